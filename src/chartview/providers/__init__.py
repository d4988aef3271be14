# Cloud identity providers for registry auto-login

from .cloud_login import LoginManager, default_login_providers

__all__ = ["LoginManager", "default_login_providers"]
