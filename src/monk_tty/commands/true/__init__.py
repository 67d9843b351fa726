from .true import FalseCommand, TrueCommand

__all__ = ["FalseCommand", "TrueCommand"]
