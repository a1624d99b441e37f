"""Tests for the engine API JWT secret."""

from __future__ import annotations

import stat
from pathlib import Path

from eth_supervisor.clients import ensure_jwt_secret


class TestEnsureJwtSecret:
    """Tests for creating and reusing the secret."""

    def test_creates_hex_secret(self, tmp_path: Path) -> None:
        """A new secret is 32 bytes of hex, readable by the owner only."""
        path = ensure_jwt_secret(tmp_path / "jwt" / "jwt.hex")

        secret = path.read_text()
        assert len(secret) == 64
        int(secret, 16)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_existing_secret_kept(self, tmp_path: Path) -> None:
        """Running clients keep working with the secret they already have."""
        path = tmp_path / "jwt.hex"
        path.write_text("ab" * 32)

        ensure_jwt_secret(path)

        assert path.read_text() == "ab" * 32
