from .Strategy import StatusDict, Strategy

__all__ = [
    "Strategy",
    "StatusDict",
]
