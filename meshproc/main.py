#!/usr/bin/env python
import os
import sys
import logging
from pathlib import Path

from meshproc.errors import MeshError, OpenError, UnsupportedFormatError
from meshproc.mesh import detect_format, read_mesh
from meshproc.tokens import measure_size

DEFAULT_LOG_LEVEL = 'WARNING'
LOG_LEVEL_ENV = 'MESHPROC_LOG_LEVEL'
LOG_FORMAT = '%(levelname)s %(name)s: %(message)s'

logger = logging.getLogger(__name__)

def configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format=LOG_FORMAT, stream=sys.stderr)

def count_triangles(path: Path) -> int | None:
    """Decode the mesh at `path` and return its triangle count, or None for an empty file."""
    try:
        f = open(path, 'rb')
    except OSError as e:
        raise OpenError(str(path), e) from e

    with f:
        detect_format(path)  # nothing is read from an unsupported file
        file_size = measure_size(f)
        logger.debug("Reading %s (%d bytes)", path, file_size)
        triangles = read_mesh(f, path, file_size)
    return None if file_size == 0 else len(triangles)

def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Expected arguments: /path/to/mesh/file", file=sys.stderr)
        return 1

    configure_logging()
    try:
        num_triangles = count_triangles(Path(args[0]))
    except OpenError as e:
        print(e, file=sys.stderr)
        return 1
    except UnsupportedFormatError as e:
        print("Unsupported format", file=sys.stderr)
        print(e, file=sys.stderr)
        return 1
    except MeshError as e:
        print(f"Failed to read {args[0]}: {e}", file=sys.stderr)
        return 1

    if num_triangles is None:
        print("Empty file")
    else:
        print(f"Number of triangles: {num_triangles}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
