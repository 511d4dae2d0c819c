"""
Infrastructure layer: credential stores, SSH probing, tmux and the history
database.
"""
