from .whoami import WhoamiCommand

__all__ = ["WhoamiCommand"]
