import io
import struct
import unittest
from meshproc.errors import TokenError
from meshproc.math import Vector3, Triangle
from meshproc.stl import read_stl, binary_stl_size

def encode_binary_stl(triangles: list[Triangle], header: bytes = b'test mesh') -> bytes:
    data = header.ljust(80, b'\0') + struct.pack('<I', len(triangles))
    for t in triangles:
        data += struct.pack('<12f', *t.normal, *t.vertices[0], *t.vertices[1], *t.vertices[2])
        data += struct.pack('<H', 0)
    return data

def make_triangle(offset: float) -> Triangle:
    return Triangle(
        normal=Vector3(0.0, 0.0, 1.0),
        vertices=(Vector3(offset, 0.1, -2.5), Vector3(offset + 1.0, 0.2, -2.5), Vector3(offset, 1.3, -2.5)))

ASCII_FACET = """facet normal 0 0 1
  outer loop
    vertex 0 0 0
    vertex 1 0 0
    vertex 0 1 0
  endloop
endfacet
"""

class TestBinarySTL(unittest.TestCase):
    def test_triangle_count(self):
        """Test that binary STL yields the declared number of triangles and consumes the whole file."""
        for n in [0, 1, 5, 64]:
            with self.subTest(num_triangles=n):
                data = encode_binary_stl([make_triangle(i) for i in range(n)])
                self.assertEqual(len(data), binary_stl_size(n))
                f = io.BytesIO(data)
                triangles = read_stl(f)
                self.assertEqual(len(triangles), n)
                self.assertEqual(f.tell(), 80 + 4 + n * (48 + 2))

    def test_values_preserved(self):
        """Test that normals and vertices survive encoding to the binary layout."""
        expected = [make_triangle(0.5), make_triangle(-7.25)]
        triangles = read_stl(io.BytesIO(encode_binary_stl(expected)))
        for t, e in zip(triangles, expected):
            for actual, wanted in zip([t.normal, *t.vertices], [e.normal, *e.vertices]):
                for a, w in zip(actual, wanted):
                    self.assertAlmostEqual(a, w, delta=1e-6)

    def test_header_text_ignored(self):
        """Test that a binary header starting with 'solid' is still decoded as binary."""
        data = encode_binary_stl([make_triangle(0)], header=b'solid facet normal vertex')
        triangles = read_stl(io.BytesIO(data))
        self.assertEqual(len(triangles), 1)
        self.assertAlmostEqual(triangles[0].vertices[2].y, 1.3, delta=1e-6)

    def test_size_mismatch_falls_back_to_ascii(self):
        """Test that a binary-looking file one byte too long is decoded as ASCII."""
        data = encode_binary_stl([make_triangle(0)]) + b'\n'
        self.assertEqual(read_stl(io.BytesIO(data)), [])

    def test_explicit_file_size(self):
        """Test that the caller-supplied size decides the binary check."""
        data = encode_binary_stl([make_triangle(0)])
        self.assertEqual(len(read_stl(io.BytesIO(data), file_size=len(data))), 1)
        self.assertEqual(read_stl(io.BytesIO(data), file_size=len(data) + 2), [])


class TestAsciiSTL(unittest.TestCase):
    def test_single_facet(self):
        """Test that an ASCII facet is decoded into a triangle."""
        text = f"solid cube\n{ASCII_FACET}endsolid cube\n"
        triangles = read_stl(io.BytesIO(text.encode()))
        self.assertEqual(triangles, [Triangle(
            normal=Vector3(0, 0, 1),
            vertices=(Vector3(0, 0, 0), Vector3(1, 0, 0), Vector3(0, 1, 0)))])

    def test_facet_count_independent_of_whitespace(self):
        """Test that the facet count does not depend on line breaks and indentation."""
        layouts = {
            'multiline': ASCII_FACET,
            'single line': ' '.join(ASCII_FACET.split()) + ' ',
            'tabs': '\t'.join(ASCII_FACET.split()) + '\r\n',
            'one token per line': '\n'.join(ASCII_FACET.split()) + '\n'}

        for name, facet in layouts.items():
            for k in [1, 3, 10]:
                with self.subTest(layout=name, facets=k):
                    text = 'solid part\n' + facet * k + 'endsolid part\n'
                    self.assertEqual(len(read_stl(io.BytesIO(text.encode()))), k)

    def test_scientific_notation(self):
        """Test that coordinates in exponent notation are parsed."""
        text = ASCII_FACET.replace('vertex 1 0 0', 'vertex 1.5e+02 -2E-3 0')
        triangles = read_stl(io.BytesIO(text.encode()))
        self.assertEqual(triangles[0].vertices[1], Vector3(150.0, -0.002, 0.0))

    def test_tokens_between_facets_skipped(self):
        """Test that tokens outside facet blocks are ignored."""
        text = f"solid a b c\n{ASCII_FACET}color 1 2 3\n{ASCII_FACET}endsolid\n"
        self.assertEqual(len(read_stl(io.BytesIO(text.encode()))), 2)

    def test_no_facets(self):
        """Test that an ASCII file without facets has no triangles."""
        self.assertEqual(read_stl(io.BytesIO(b'solid empty\nendsolid empty\n')), [])


class TestMalformedSTL(unittest.TestCase):
    def test_malformed_number(self):
        """Test that a non-numeric coordinate raises TokenError."""
        text = ASCII_FACET.replace('vertex 1 0 0', 'vertex 1 zero 0')
        with self.assertRaises(TokenError) as context:
            read_stl(io.BytesIO(text.encode()))
        self.assertIn("'zero'", str(context.exception))

    def test_malformed_normal(self):
        """Test that a non-numeric normal component raises TokenError."""
        text = ASCII_FACET.replace('normal 0 0 1', 'normal 0 0 x')
        with self.assertRaises(TokenError):
            read_stl(io.BytesIO(text.encode()))

    def test_unexpected_keyword(self):
        """Test that a misplaced keyword inside a facet raises TokenError."""
        text = ASCII_FACET.replace('outer loop', 'outer ring')
        with self.assertRaises(TokenError) as context:
            read_stl(io.BytesIO(text.encode()))
        self.assertEqual("Expected 'loop' at line 2, found 'ring'", str(context.exception))

    def test_truncated_facet(self):
        """Test that a stream ending inside a facet raises TokenError."""
        text = 'solid part\n' + ASCII_FACET + ASCII_FACET.split('endloop')[0]
        with self.assertRaises(TokenError):
            read_stl(io.BytesIO(text.encode()))


class TestEmptySTL(unittest.TestCase):
    def test_empty_file(self):
        """Test that a zero-byte input yields no triangles without raising."""
        self.assertEqual(read_stl(io.BytesIO(b'')), [])


if __name__ == '__main__':
    unittest.main()
