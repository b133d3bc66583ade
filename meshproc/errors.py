class MeshError(Exception):
    """Base class for every error raised while decoding a mesh file."""

class OpenError(MeshError):
    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(f"Failed to open file: {path}\n{cause.strerror or cause}")
        self.path = path
        self.cause = cause

class UnsupportedFormatError(MeshError, ValueError):
    pass

class SchemaError(MeshError, ValueError):
    pass

class MeshLookupError(MeshError, LookupError):
    pass

class BoundsError(MeshError, IndexError):
    pass

class TokenError(MeshError, ValueError):
    pass
