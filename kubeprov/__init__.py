"""
kubeprov - kubeadm node provisioning for Fedora and Ubuntu/Debian hosts.
"""

__version__ = "0.1.0"
