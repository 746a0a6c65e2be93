from .reply_builder import ReplyBuilder

__all__ = [
    "ReplyBuilder",
]
