from .filename import sanitize_filename, with_extension

__all__ = ["sanitize_filename", "with_extension"]
