"""
Tests for ssh login command construction.
"""

from sshm.application.command_builder import SSHPASS_ENV, build_ssh_command
from sshm.domain import AuthKind

from conftest import make_target


class TestBuildSshCommand:
    """Test cases for build_ssh_command."""

    def test_key_target_default_port(self):
        command = build_ssh_command(make_target())

        assert command.line == (
            "ssh -t ops@10.0.0.5 -i /k "
            "-o ServerAliveInterval=60 -o ServerAliveCountMax=3"
        )
        assert command.env == {}

    def test_custom_port(self):
        command = build_ssh_command(make_target(port=2222))

        assert "-p 2222" in command.line

    def test_keepalive_settings(self):
        command = build_ssh_command(make_target(), keepalive_interval=15, keepalive_count_max=5)

        assert "ServerAliveInterval=15" in command.line
        assert "ServerAliveCountMax=5" in command.line

    def test_arguments_are_quoted(self):
        command = build_ssh_command(make_target(key_path="/home/ops/my keys/id_ed25519"))

        assert "'/home/ops/my keys/id_ed25519'" in command.line

    def test_store_backed_password_uses_sshpass_env(self):
        target = make_target(auth_kind=AuthKind.PASSWORD, key_path=None, credential_ref="password-db1")

        command = build_ssh_command(target, password="s3cr3t")

        assert command.line.startswith("sshpass -e ssh -t ops@10.0.0.5")
        assert "s3cr3t" not in command.line
        assert command.env == {SSHPASS_ENV: "s3cr3t"}
        assert "s3cr3t" not in repr(command)

    def test_plaintext_password_stays_interactive(self):
        target = make_target(auth_kind=AuthKind.PASSWORD, key_path=None, password="plain")

        command = build_ssh_command(target, password="plain")

        assert command.line.startswith("ssh -t")
        assert command.env == {}

    def test_store_backed_without_secret_stays_interactive(self):
        target = make_target(auth_kind=AuthKind.PASSWORD, key_path=None, credential_ref="password-db1")

        command = build_ssh_command(target)

        assert command.line.startswith("ssh -t")
