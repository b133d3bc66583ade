import logging
from pathlib import Path
from typing import BinaryIO

from meshproc.errors import OpenError, UnsupportedFormatError
from meshproc.math import Triangle
from meshproc.ply import read_ply
from meshproc.stl import read_stl

logger = logging.getLogger(__name__)

MESH_FORMATS = {'.stl': 'stl', '.ply': 'ply'}

# Helper functions

def detect_format(path: Path | str) -> str:
    # Compare suffixes case-insensitively, model.STL and model.stl are the same format
    name = str(path).lower()
    for suffix, fmt in MESH_FORMATS.items():
        if name.endswith(suffix):
            return fmt
    raise UnsupportedFormatError(f"Unsupported file extension: {Path(path).suffix or '(none)'}")


# Loaders

def read_mesh(f: BinaryIO, path: Path | str, file_size: int | None = None) -> list[Triangle]:
    match detect_format(path):
        case 'stl':
            triangles = read_stl(f, file_size)
        case 'ply':
            triangles = read_ply(f, file_size)
    logger.debug("Loaded %d triangles from %s", len(triangles), path)
    return triangles

def load_mesh(path: Path | str) -> list[Triangle]:
    detect_format(path)
    try:
        f = open(path, 'rb')
    except OSError as e:
        raise OpenError(str(path), e) from e
    with f:
        return read_mesh(f, path)
