"""Azure Resource Manager clients used by the provisioner."""
