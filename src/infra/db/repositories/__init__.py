from .parts_repo import PartsRepo

__all__ = ["PartsRepo"]
