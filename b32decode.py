#!/usr/bin/env python3
"""
b32decode - Base32 Decoder

Decodes RFC 4648 base32 text (A-Z, 2-7, '=' padding) back into raw bytes.

Principle:
  - Each character carries 5 bits, 8 characters form a 40-bit quantum
  - A quantum unpacks into 5 bytes, most significant bit first
  - The final quantum may be partial: 2/4/5/7 characters give 1/2/3/4 bytes
  - Any other partial length (1, 3, 6) cannot come from an encoder

Input may end with a single newline and any amount of '=' padding.
Lowercase letters are accepted. Anything else is rejected, never guessed.

Examples:
    # Decode from stdin
    echo NBSWY3DP | python3 b32decode.py

    # Decode a file into a binary
    python3 b32decode.py -i encoded.txt -o decoded.bin

    # Show quantum layout while decoding
    python3 b32decode.py -i encoded.txt -v
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np


ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
PAD_CHAR = "="

QUANTUM_SIZE = 8    # characters per quantum
QUANTUM_BYTES = {   # characters in final quantum -> decoded bytes
    0: 0,
    2: 1,
    4: 2,
    5: 3,
    7: 4,
    8: 5,
}

# Lowercase folds onto the same values
SYMBOL_VALUES: Dict[str, int] = {}
for value, char in enumerate(ALPHABET):
    SYMBOL_VALUES[char] = value
    SYMBOL_VALUES[char.lower()] = value


# Errors

class DecodeError(ValueError):
    """Base class for malformed base32 input."""


class InvalidCharacterError(DecodeError):
    def __init__(self, char: str, position: Optional[int] = None):
        self.char = char
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Invalid base32 character {char!r}{where}")


class InvalidTrailingQuantumLengthError(DecodeError):
    def __init__(self, length: int):
        self.length = length
        super().__init__(
            f"Invalid length for final quantum: {length} "
            f"(expected one of {sorted(k for k in QUANTUM_BYTES if k < QUANTUM_SIZE)})"
        )


# Symbols

def decode_char(char: str, position: Optional[int] = None) -> int:
    """Map one base32 character to its 5-bit value."""
    try:
        return SYMBOL_VALUES[char]
    except KeyError:
        raise InvalidCharacterError(char, position) from None


def symbol_values(content: str) -> np.ndarray:
    """Map every content character to its 5-bit value."""
    values = np.empty(len(content), dtype=np.uint8)
    for pos, char in enumerate(content):
        values[pos] = decode_char(char, pos)
    return values


# Padding

def as_text(source: Union[str, bytes]) -> str:
    # latin-1 keeps one char per byte, so positions in errors match the input
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source).decode('latin-1')
    return source


def strip_line_ending(text: str) -> str:
    """Drop exactly one trailing newline (LF or CRLF), if present."""
    if text.endswith('\r\n'):
        return text[:-2]
    if text.endswith('\n'):
        return text[:-1]
    return text


def split_content(source: Union[str, bytes]) -> Tuple[str, int]:
    """
    Separate the significant characters from the trailing padding.

    Walks back over the run of '=' and newline characters at the end of
    the input. Padding characters are counted, newlines inside the run
    are skipped.

    Returns:
        (content, padding count)
    """
    text = strip_line_ending(as_text(source))

    end = len(text)
    padding = 0
    while end > 0 and text[end - 1] in (PAD_CHAR, '\n'):
        if text[end - 1] == PAD_CHAR:
            padding += 1
        end -= 1

    return text[:end], padding


def padding_amount(source: Union[str, bytes]) -> int:
    """Count the '=' characters trailing the content."""
    return split_content(source)[1]


# Quantum Geometry

@dataclass(frozen=True)
class QuantumGeometry:
    content_length: int
    padding: int
    full_quanta: int
    trailing_length: int
    decoded_size: int

    @classmethod
    def from_lengths(cls, content_length: int, padding: int = 0) -> "QuantumGeometry":
        full_quanta, trailing_length = divmod(content_length, QUANTUM_SIZE)
        if trailing_length not in QUANTUM_BYTES:
            raise InvalidTrailingQuantumLengthError(trailing_length)

        return cls(
            content_length=content_length,
            padding=padding,
            full_quanta=full_quanta,
            trailing_length=trailing_length,
            decoded_size=full_quanta * QUANTUM_BYTES[QUANTUM_SIZE] + QUANTUM_BYTES[trailing_length],
        )

    @property
    def quanta(self) -> int:
        """Number of quanta including a partial final one."""
        return self.full_quanta + (1 if self.trailing_length else 0)


def quantum_geometry(source: Union[str, bytes]) -> QuantumGeometry:
    """Compute how many bytes ``source`` decodes to, without decoding it."""
    content, padding = split_content(source)
    return QuantumGeometry.from_lengths(len(content), padding)


# Unpacking

def unpack_quanta(values: np.ndarray, decoded_size: int) -> bytes:
    """
    Pack 5-bit symbol values into bytes, one quantum per row.

    Each quantum of 8 symbols becomes 40 bits: symbol 0 fills the top of
    byte 0, symbol 7 the bottom 5 bits of byte 4. A partial final quantum
    is zero-filled and then cut to ``decoded_size`` so only the bytes its
    characters fully determine are kept.

    Args:
        values: Symbol values (0-31), one per content character
        decoded_size: Exact number of output bytes

    Returns:
        Decoded bytes
    """
    if decoded_size == 0:
        return b''

    quanta = -(-len(values) // QUANTUM_SIZE)
    grid = np.zeros(quanta * QUANTUM_SIZE, dtype=np.uint8)
    grid[:len(values)] = values

    # (quanta, 8, 8) bits per symbol byte; the low 5 carry the value
    bits = np.unpackbits(grid.reshape(quanta, QUANTUM_SIZE, 1), axis=2)[:, :, 3:]
    packed = np.packbits(bits.reshape(quanta, QUANTUM_SIZE * 5), axis=1)

    return packed.reshape(-1)[:decoded_size].tobytes()


# Decoding

def decode(source: Union[str, bytes]) -> bytes:
    """
    Decode base32 text into bytes.

    Args:
        source: Base32 text, optionally padded and newline-terminated

    Returns:
        Decoded bytes, exactly as many as the content length implies

    Raises:
        InvalidTrailingQuantumLengthError: final quantum has 1, 3 or 6 characters
        InvalidCharacterError: a character outside A-Z, a-z, 2-7
    """
    content, padding = split_content(source)
    geometry = QuantumGeometry.from_lengths(len(content), padding)
    values = symbol_values(content)
    return unpack_quanta(values, geometry.decoded_size)


# I/O Functions

def read_input(input_path: Optional[str]) -> bytes:
    """Read data from file or stdin."""
    if input_path:
        path = Path(input_path)
        if not path.exists():
            print(f"Error: File not found: {input_path}", file=sys.stderr)
            sys.exit(1)

        with path.open('rb') as f:
            return f.read()
    else:
        return sys.stdin.buffer.read()


def write_output(data: bytes, output_path: Optional[str], newline: bool = True) -> None:
    """Write data to file, or to stdout followed by a newline."""
    if output_path:
        path = Path(output_path)
        with path.open('wb') as f:
            f.write(data)
        print(f"Decoded data saved to: {output_path}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(data + b'\n' if newline else data)
        sys.stdout.buffer.flush()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Decode RFC 4648 base32 text',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Decode from stdin
  echo NBSWY3DP | python3 b32decode.py

  # Decode file to binary
  python3 b32decode.py -i encoded.txt -o decoded.bin

  # Raw bytes on stdout, no trailing newline
  python3 b32decode.py -i encoded.txt -n > decoded.bin
        """
    )

    parser.add_argument('-i', '--input',
                        help='Input file (default: stdin)')
    parser.add_argument('-o', '--output',
                        help='Output file (default: stdout)')
    parser.add_argument('-n', '--no-newline',
                        action='store_true',
                        help='Do not append a newline when writing to stdout')
    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        help='Verbose output')

    args = parser.parse_args(argv)

    if args.verbose:
        print(f"Reading from: {args.input or 'stdin'}...", file=sys.stderr)

    try:
        encoded_data = read_input(args.input)

        if args.verbose:
            geometry = quantum_geometry(encoded_data)
            print(
                f"Content: {geometry.content_length} chars, padding: {geometry.padding}, "
                f"quanta: {geometry.full_quanta} full + "
                f"{1 if geometry.trailing_length else 0} partial "
                f"({geometry.trailing_length} chars)",
                file=sys.stderr
            )

        decoded = decode(encoded_data)
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except MemoryError:
        print("Error: Out of memory", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Decoded {len(decoded)} bytes", file=sys.stderr)

    write_output(decoded, args.output, newline=not args.no_newline)
    return 0


if __name__ == '__main__':
    sys.exit(main())
