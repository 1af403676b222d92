from models.session import Session

__all__ = ["Session"]
