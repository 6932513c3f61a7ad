from .stream_buffer import BoundedStreamBuffer

__all__ = ["BoundedStreamBuffer"]
