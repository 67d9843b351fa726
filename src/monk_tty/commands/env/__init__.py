from .env import EnvCommand, ExportCommand

__all__ = ["EnvCommand", "ExportCommand"]
