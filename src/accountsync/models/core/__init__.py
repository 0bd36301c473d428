from .core_model import CoreModel

__all__ = ["CoreModel"]
