"""Unit tests for the first-boot script generator."""

import pytest

from fairdeploy.boot_payload import BOOT_PACKAGES, generate_boot_payload
from fairdeploy.exceptions import ValidationError


class TestGenerateBootPayload:
    """Test generate_boot_payload()."""

    def test_clones_repository_into_admin_home(self):
        """Given alice and a repo URL, the clone and directory check are present."""
        payload = generate_boot_payload("alice", "https://example.com/repo.git")

        assert "git clone https://example.com/repo.git" in payload
        assert 'if [ ! -d "/home/alice/repo" ]; then' in payload
        assert "cd /home/alice/\n" in payload

    def test_is_a_bash_script(self):
        payload = generate_boot_payload("alice", "https://example.com/repo.git")
        assert payload.startswith("#!/bin/bash\n")

    def test_installs_all_packages(self):
        payload = generate_boot_payload("alice", "https://example.com/repo.git")

        install_line = next(
            line for line in payload.splitlines() if line.startswith("sudo apt-get install")
        )
        for package in BOOT_PACKAGES:
            assert package in install_line.split()

    def test_starts_and_enables_docker(self):
        payload = generate_boot_payload("alice", "https://example.com/repo.git")

        assert "sudo systemctl start docker" in payload
        assert "sudo systemctl enable docker" in payload

    def test_checks_compose_file_before_starting_stack(self):
        payload = generate_boot_payload("alice", "https://example.com/repo.git")

        check = payload.index('if [ ! -f "./docker-compose.yaml" ]; then')
        up = payload.index("sudo docker-compose -f docker-compose.yaml up -d")
        assert check < up

    def test_aborts_on_missing_clone_or_compose_file(self):
        payload = generate_boot_payload("alice", "https://example.com/repo.git")
        assert payload.count("exit 1") == 2

    def test_explicit_clone_dir(self):
        payload = generate_boot_payload("bob", "https://example.com/repo.git", "custom")

        assert 'if [ ! -d "/home/bob/custom" ]; then' in payload
        assert "cd /home/bob/custom/" in payload

    def test_rejects_unsafe_repo_url(self):
        with pytest.raises(ValidationError):
            generate_boot_payload("alice", "https://example.com/repo.git && curl evil")

    def test_rejects_invalid_username(self):
        with pytest.raises(ValidationError):
            generate_boot_payload("../root", "https://example.com/repo.git")
