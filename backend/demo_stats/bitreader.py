import io
import struct
from typing import BinaryIO, Optional, Tuple

from demo_stats.exceptions import TruncationError


class BitReader:
    """
    Bit-granular cursor over a binary stream.

    Bits are consumed least-significant first. Byte reads made while a partial
    byte is still buffered are shifted through the pending bits, so bit-level
    and byte-level reads can be mixed freely.
    """

    MAX_VARINT_BYTES = 5

    def __init__(self, stream: BinaryIO, offset: int = 0):
        self.stream = stream
        # Position of the stream start within the source, plus bytes consumed
        self.offset = offset
        # (remaining bits low-aligned, number of remaining bits)
        self._head: Optional[Tuple[int, int]] = None

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> 'BitReader':
        return cls(io.BytesIO(data), offset)

    def _read_source(self, size: int) -> bytes:
        data = self.stream.read(size)
        if data is None or len(data) < size:
            got = len(data) if data else 0
            self.offset += got
            raise TruncationError(f"Expected {size} bytes, got {got}", self.offset)
        self.offset += size
        return data

    def read(self, size: int) -> bytes:
        """Read `size` bytes, recombining any buffered partial byte"""
        if size <= 0:
            return b''
        if self._head is None:
            return self._read_source(size)

        bits, remaining = self._head
        raw = self._read_source(size)
        value = bits | (int.from_bytes(raw, 'little') << remaining)
        total = size * 8
        self._head = (value >> total, remaining)
        return (value & ((1 << total) - 1)).to_bytes(size, 'little')

    read_exact = read

    def read_bits(self, count: int) -> int:
        """Read up to 32 bits as an unsigned integer"""
        if not 0 <= count <= 32:
            raise ValueError(f"Bit count out of range: {count}")

        result = 0
        shift = 0
        while count > 0:
            if self._head is None:
                self._head = (self._read_source(1)[0], 8)
            byte, remaining = self._head
            take = min(count, remaining)

            result |= (byte & ((1 << take) - 1)) << shift
            shift += take
            count -= take
            remaining -= take
            self._head = (byte >> take, remaining) if remaining else None

        return result

    def read_bit(self) -> bool:
        return self.read_bits(1) == 1

    def flush_bits(self) -> Optional[int]:
        """Drop and return the buffered partial byte, if any"""
        head, self._head = self._head, None
        return head[0] if head else None

    def _unpack(self, fmt: str) -> int:
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))[0]

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u16(self) -> int:
        return self._unpack('<H')

    def read_u32(self) -> int:
        return self._unpack('<I')

    def read_u64(self) -> int:
        return self._unpack('<Q')

    def read_i32(self) -> int:
        return self._unpack('<i')

    def read_i64(self) -> int:
        return self._unpack('<q')

    def read_f32(self) -> float:
        return self._unpack('<f')

    def read_u16_be(self) -> int:
        return self._unpack('>H')

    def read_u32_be(self) -> int:
        return self._unpack('>I')

    def read_u64_be(self) -> int:
        return self._unpack('>Q')

    def read_i32_be(self) -> int:
        return self._unpack('>i')

    def read_i64_be(self) -> int:
        return self._unpack('>q')

    def read_f32_be(self) -> float:
        return self._unpack('>f')

    def read_var_u32(self) -> int:
        """Read a protobuf-style varint of at most five groups"""
        result = 0
        for group in range(self.MAX_VARINT_BYTES):
            byte = self.read_u8()
            result |= (byte & 0x7F) << (group * 7)
            if not byte & 0x80:
                break
        return result

    def read_c_string(self) -> bytes:
        """Read bytes up to the first NUL, consuming the NUL"""
        result = bytearray()
        while True:
            byte = self.read_u8()
            if byte == 0:
                return bytes(result)
            result.append(byte)

    def read_fixed_c_string(self, size: int) -> str:
        return string_from_nilslice(self.read(size))


def string_from_nilslice(data: bytes) -> str:
    """Decode a NUL-padded buffer up to its first NUL"""
    end = data.find(b'\0')
    if end >= 0:
        data = data[:end]
    return data.decode('utf-8', errors='replace')
