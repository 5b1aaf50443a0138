"""Compute providers. AWS EC2 is the only one."""
