import logging
import numpy as np
from enum import Enum, auto
from typing import BinaryIO

from meshproc.errors import TokenError
from meshproc.math import Vector3, Triangle, ZERO
from meshproc.tokens import TokenStream, parse_float, measure_size

logger = logging.getLogger(__name__)

BINARY_STL_HEADER_SIZE = 80
TRIANGLE_COUNT_SIZE = 4
TRIANGLE_RECORD_SIZE = 12 * 4  # normal + 3 vertices, float32 each
ATTRIBUTE_SIZE = 2
STL_RECORD_DTYPE = np.dtype([
    ('normal', '<f4', (3,)),
    ('vertices', '<f4', (3, 3)),
    ('attributes', '<u2')])

# Helper functions

def binary_stl_size(num_triangles: int) -> int:
    return BINARY_STL_HEADER_SIZE + TRIANGLE_COUNT_SIZE + num_triangles * (TRIANGLE_RECORD_SIZE + ATTRIBUTE_SIZE)


# Binary STL

def read_binary_stl(f: BinaryIO, num_triangles: int) -> list[Triangle]:
    if num_triangles == 0:
        return []
    records = np.frombuffer(f.read(num_triangles * STL_RECORD_DTYPE.itemsize), STL_RECORD_DTYPE, count=num_triangles)
    normals = records['normal'].tolist()
    vertices = records['vertices'].tolist()
    return [Triangle(normal=Vector3.from_iterable(n), vertices=(Vector3.from_iterable(v0), Vector3.from_iterable(v1), Vector3.from_iterable(v2)))
            for n, (v0, v1, v2) in zip(normals, vertices)]


# ASCII STL

class FacetState(Enum):
    AWAIT_FACET = auto()
    AWAIT_NORMAL = auto()
    NORMAL_COORDS = auto()
    AWAIT_OUTER = auto()
    AWAIT_LOOP = auto()
    AWAIT_VERTEX = auto()
    VERTEX_COORDS = auto()
    AWAIT_ENDLOOP = auto()
    AWAIT_ENDFACET = auto()

# state -> (keyword accepted in that state, state that follows it)
KEYWORD_TRANSITIONS = {
    FacetState.AWAIT_NORMAL: ('normal', FacetState.NORMAL_COORDS),
    FacetState.AWAIT_OUTER: ('outer', FacetState.AWAIT_LOOP),
    FacetState.AWAIT_LOOP: ('loop', FacetState.AWAIT_VERTEX),
    FacetState.AWAIT_VERTEX: ('vertex', FacetState.VERTEX_COORDS),
    FacetState.AWAIT_ENDLOOP: ('endloop', FacetState.AWAIT_ENDFACET),
    FacetState.AWAIT_ENDFACET: ('endfacet', FacetState.AWAIT_FACET)}

def read_ascii_stl(f: BinaryIO) -> list[Triangle]:
    tokens = TokenStream(f)
    triangles: list[Triangle] = []
    state = FacetState.AWAIT_FACET
    coords: list[float] = []
    normal = ZERO
    vertices: list[Vector3] = []

    for token in tokens:
        match state:
            case FacetState.AWAIT_FACET:
                if token == 'facet':  # anything between facets (solid, endsolid, names) is skipped
                    state = FacetState.AWAIT_NORMAL

            case FacetState.NORMAL_COORDS | FacetState.VERTEX_COORDS:
                what = 'facet normal' if state is FacetState.NORMAL_COORDS else f'vertex {len(vertices)}'
                coords.append(parse_float(token, what, tokens.line_number))
                if len(coords) < 3:
                    continue
                if state is FacetState.NORMAL_COORDS:
                    normal = Vector3(*coords)
                    state = FacetState.AWAIT_OUTER
                else:
                    vertices.append(Vector3(*coords))
                    state = FacetState.AWAIT_ENDLOOP if len(vertices) == 3 else FacetState.AWAIT_VERTEX
                coords = []

            case _:
                keyword, next_state = KEYWORD_TRANSITIONS[state]
                if token != keyword:
                    raise TokenError(f"Expected '{keyword}' at line {tokens.line_number}, found '{token}'")
                if state is FacetState.AWAIT_ENDFACET:
                    triangles.append(Triangle(normal=normal, vertices=(vertices[0], vertices[1], vertices[2])))
                    vertices = []
                state = next_state

    if state is not FacetState.AWAIT_FACET:
        raise TokenError(f"Unexpected end of stream inside facet {len(triangles)} (state {state.name})")
    return triangles


# STL loader

def read_stl(f: BinaryIO, file_size: int | None = None) -> list[Triangle]:
    if file_size is None:
        file_size = measure_size(f)
    if file_size == 0:
        logger.info("Empty file")
        return []

    # The declared triangle count is the only way to tell binary from ASCII,
    # the size must match it exactly
    f.seek(BINARY_STL_HEADER_SIZE)
    count_bytes = f.read(TRIANGLE_COUNT_SIZE)
    if len(count_bytes) == TRIANGLE_COUNT_SIZE:
        num_triangles = int.from_bytes(count_bytes, 'little')
        if file_size == binary_stl_size(num_triangles):
            logger.debug("Decoding binary STL with %d triangles", num_triangles)
            return read_binary_stl(f, num_triangles)

    logger.debug("File size %d does not match a binary STL, decoding as ASCII", file_size)
    f.seek(0)
    triangles = read_ascii_stl(f)
    logger.debug("Decoded %d triangles from ASCII STL", len(triangles))
    return triangles
