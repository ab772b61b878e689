"""
Lustre Provisioner - dynamic provisioning of Azure Managed Lustre volumes.

This package creates and deletes AMLFS clusters on behalf of volume
create/delete requests, and provides a CLI for operators.
"""

__version__ = "0.1.0"
__all__ = ["azure", "cli"]
