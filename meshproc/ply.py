import math
import logging
from enum import Enum
from typing import BinaryIO, TextIO
from dataclasses import dataclass, field

from meshproc.errors import SchemaError, MeshLookupError, BoundsError, UnsupportedFormatError
from meshproc.math import Vector3, Triangle, ZERO
from meshproc.tokens import TokenStream, measure_size

logger = logging.getLogger(__name__)

SUPPORTED_PLY_FORMATS = ('ascii',)
FACE_INDEX_PROPERTIES = ('vertex_indices', 'vertex_index')

# Header dataclasses

class PropertyKind(Enum):
    SCALAR = 'scalar'
    LIST = 'list'

@dataclass
class PropertyDefinition:
    name: str
    kind: PropertyKind

@dataclass
class ElementDefinition:
    name: str
    count: int
    properties: list[PropertyDefinition] = field(default_factory=list)

@dataclass
class PlyHeader:
    format: str
    version: str
    elements: list[ElementDefinition]
    comments: list[str] = field(default_factory=list)

# Every value is stored as a float, scalars as lists of length one
PlyRecord = dict[str, list[float]]
PlyData = dict[str, list[PlyRecord]]


# Header parser

def parse_property(tokens: TokenStream, elements: list[ElementDefinition]) -> None:
    kind = PropertyKind.SCALAR
    if tokens.expect('property type') == 'list':
        tokens.expect('list count type')  # types are erased, every value is read as a float
        tokens.expect('list item type')
        kind = PropertyKind.LIST
    name = tokens.expect('property name')

    if not elements:
        raise SchemaError("Expected at least one element definition before property definition")
    element = elements[-1]
    if any(p.name == name for p in element.properties):
        raise SchemaError(f"Duplicate property '{name}' in element '{element.name}'")
    element.properties.append(PropertyDefinition(name=name, kind=kind))

def parse_ply_header(tokens: TokenStream) -> PlyHeader:
    magic = tokens.expect("'ply'")
    if magic != 'ply':
        raise SchemaError(f"Expected 'ply' at start of file, found '{magic}'")
    tokens.expect_keyword('format')
    fmt = tokens.expect('format name')
    version = tokens.expect('format version')

    elements: list[ElementDefinition] = []
    comments: list[str] = []
    while (token := tokens.expect("'end_header'")) != 'end_header':
        match token:
            case 'comment' | 'obj_info':
                comments.append(tokens.skip_line())
            case 'element':
                name = tokens.expect('element name')
                count = tokens.read_count(f"element '{name}' count")
                elements.append(ElementDefinition(name=name, count=count))
            case 'property':
                parse_property(tokens, elements)
            case _:
                raise SchemaError(f"Unexpected keyword '{token}' in PLY header at line {tokens.line_number}")

    # Data starts on the line after end_header
    tokens.skip_line()
    return PlyHeader(format=fmt, version=version, elements=elements, comments=comments)


# Data parser

def parse_ply_data(tokens: TokenStream, elements: list[ElementDefinition]) -> PlyData:
    data: PlyData = {}
    for ed in elements:
        records = data.setdefault(ed.name, [])
        for i in range(ed.count):
            record: PlyRecord = {}
            for pd in ed.properties:
                what = f"{ed.name}[{i}].{pd.name}"
                if pd.kind is PropertyKind.LIST:
                    num_values = tokens.read_count(f"{what} length")
                    record[pd.name] = [tokens.read_float(what) for _ in range(num_values)]
                else:
                    record[pd.name] = [tokens.read_float(what)]
            records.append(record)
        logger.debug("Read %d '%s' records", ed.count, ed.name)
    return data


# Mesh projection

def get_element(data: PlyData, name: str) -> list[PlyRecord]:
    if name not in data:
        raise MeshLookupError(f"Could not find element '{name}' in PLY file")
    return data[name]

def get_scalar(record: PlyRecord, name: str, record_path: str) -> float:
    if name not in record:
        raise MeshLookupError(f"Could not find property '{name}' in {record_path}")
    return record[name][0]

def get_face_indices(record: PlyRecord, record_path: str) -> list[float]:
    for name in FACE_INDEX_PROPERTIES:
        if name in record:
            return record[name]
    raise MeshLookupError(f"Could not find face property \"vertex_index\" nor \"vertex_indices\" in {record_path}")

def ply_to_triangles(data: PlyData) -> list[Triangle]:
    vertices = [Vector3(get_scalar(e, 'x', f'vertex[{i}]'), get_scalar(e, 'y', f'vertex[{i}]'), get_scalar(e, 'z', f'vertex[{i}]'))
                for i, e in enumerate(get_element(data, 'vertex'))]

    triangles = []
    for i, e in enumerate(get_element(data, 'face')):
        indices = get_face_indices(e, f'face[{i}]')
        if len(indices) != 3:
            raise SchemaError(f"Expected face to have 3 vertices, but found {len(indices)}")

        face = []
        for value in indices:
            if not math.isfinite(value):
                raise BoundsError(f"Vertex index {value} of face[{i}] is not a finite number")
            index = int(value)
            if not 0 <= index < len(vertices):
                raise BoundsError(f"Vertex index {index} of face[{i}] is out of range for {len(vertices)} vertices")
            face.append(vertices[index])
        v0, v1, v2 = face

        normal = (v1 - v0).cross(v2 - v0)
        if normal.magnitude() == 0:
            logger.warning("Face %d is degenerate, using a zero normal", i)
            normal = ZERO
        else:
            normal = normal.normalized()
        triangles.append(Triangle(normal=normal, vertices=(v0, v1, v2)))

    return triangles


# PLY loader

def read_ply(f: BinaryIO | TextIO, file_size: int | None = None) -> list[Triangle]:
    if file_size is None:
        file_size = measure_size(f)
    if file_size == 0:
        logger.info("Empty file")
        return []

    tokens = TokenStream(f)
    header = parse_ply_header(tokens)
    logger.debug("PLY header: format %s %s, elements %s", header.format, header.version, [e.name for e in header.elements])
    if header.format not in SUPPORTED_PLY_FORMATS:
        raise UnsupportedFormatError(f"Unsupported PLY format: {header.format}")

    data = parse_ply_data(tokens, header.elements)
    return ply_to_triangles(data)
