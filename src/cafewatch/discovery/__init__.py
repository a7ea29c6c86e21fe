"""Optional network discovery for cafewatch.

Proposes candidate terminal addresses by probing the local subnet.
Independent of the registry.
"""

from cafewatch.discovery.scanner import Candidate, NetworkScanner, local_ipv4

__all__ = ["Candidate", "NetworkScanner", "local_ipv4"]
