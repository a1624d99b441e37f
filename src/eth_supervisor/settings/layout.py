"""
On-disk layout of an installation.

Everything the supervisor writes lives under `<install_dir>/ethereum_clients`::

    ethereum_clients/
        script.lock            instance lock (owner PID)
        options.json           persisted run configuration
        jwt/jwt.hex            engine API shared secret
        <client>/database      client data directory
        <client>/logs          captured client output
        validator/keystores    imported EIP-2335 keystores
        validator/deposit_data deposit data copied alongside the keys
        validator/<cc>/...     validator client database and logs
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class InstallLayout:
    """Paths derived from the install directory."""

    install_dir: Path
    """Directory the operator chose for the installation."""

    @property
    def clients_dir(self) -> Path:
        """Root of all supervisor-managed state."""
        return self.install_dir / "ethereum_clients"

    @property
    def lock_path(self) -> Path:
        """Instance lock file."""
        return self.clients_dir / "script.lock"

    @property
    def options_path(self) -> Path:
        """Persisted run configuration."""
        return self.clients_dir / "options.json"

    @property
    def jwt_path(self) -> Path:
        """Engine API JWT secret shared by execution and consensus clients."""
        return self.clients_dir / "jwt" / "jwt.hex"

    def client_dir(self, client: str) -> Path:
        """Install directory of one client binary."""
        return self.clients_dir / client

    def database_dir(self, client: str) -> Path:
        """Data directory of one client."""
        return self.client_dir(client) / "database"

    def logs_dir(self, client: str) -> Path:
        """Directory receiving captured output of one client."""
        return self.client_dir(client) / "logs"

    @property
    def validator_dir(self) -> Path:
        return self.clients_dir / "validator"

    @property
    def keystores_dir(self) -> Path:
        return self.validator_dir / "keystores"

    @property
    def deposit_data_dir(self) -> Path:
        return self.validator_dir / "deposit_data"

    def validator_database_dir(self, consensus_client: str) -> Path:
        """Validator client database (lighthouse) or wallet directory (prysm)."""
        return self.validator_dir / consensus_client / "database"

    def validator_logs_dir(self, consensus_client: str) -> Path:
        return self.validator_dir / consensus_client / "logs"

    def ensure_validator_dirs(self, consensus_client: str) -> None:
        """Create the validator directory tree if missing."""
        for path in (
            self.keystores_dir,
            self.deposit_data_dir,
            self.validator_database_dir(consensus_client),
            self.validator_logs_dir(consensus_client),
        ):
            path.mkdir(parents=True, exist_ok=True)
