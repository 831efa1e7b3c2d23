from .client import RancherClient

__all__ = ["RancherClient"]
