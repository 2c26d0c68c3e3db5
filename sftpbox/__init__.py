"""
sftpbox: entrypoint and integration harness for a chrooted SFTP container.

Key Components:
- domain.user_spec: compact user specification parsing
- provisioning: OS accounts, SSH keys, startup scripts
- entrypoint: container start-up sequence
- runtime: container CLI wrapper, readiness polling, SFTP session
"""

__version__ = "1.0.0"
