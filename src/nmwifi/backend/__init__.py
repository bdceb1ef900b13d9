"""Network backends (nmcli)."""

from nmwifi.backend.nmcli import NmcliBackend  # noqa: F401
