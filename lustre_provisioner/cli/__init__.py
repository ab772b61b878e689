"""Operator CLI for the Lustre provisioner."""
