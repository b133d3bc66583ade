import math
from typing import Iterable, Iterator
from dataclasses import dataclass

# Vector helpers

@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> 'Vector3':
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __sub__(self, other: 'Vector3') -> 'Vector3':
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def cross(self, other: 'Vector3') -> 'Vector3':
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x)

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalized(self) -> 'Vector3':
        # Raises ZeroDivisionError for zero-length vectors, callers check magnitude first
        m = self.magnitude()
        return Vector3(self.x / m, self.y / m, self.z / m)


ZERO = Vector3(0.0, 0.0, 0.0)


# Mesh primitives

@dataclass(frozen=True)
class Triangle:
    normal: Vector3
    vertices: tuple[Vector3, Vector3, Vector3]
