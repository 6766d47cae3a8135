#!/usr/bin/env python3
"""
Name: cut
Description: select portions of each line of a file
Author: Rich Lafferty, rich@alcor.concordia.ca (Original Perl Author)
License: perl
"""

import sys
import os
import argparse
import re
from enum import Enum

__version__ = "1.3"

NUMBER_RE = re.compile(r'[0-9]+')
RANGE_RE = re.compile(r'([0-9]*)-([0-9]*)')

class Mode(Enum):
    BYTES = 'b'
    CHARS = 'c'
    FIELDS = 'f'

class OutputError(Exception):
    """Writing the selection failed; wraps the OSError in .error."""
    def __init__(self, error):
        super().__init__(error)
        self.error = error

def _position(num_str: str) -> int:
    num = int(num_str)
    if num == 0:
        raise ValueError("positions and fields are numbered from 1")
    return num

def _merge(ranges: list) -> tuple:
    """Sorts ranges by start and joins any that overlap or touch."""
    merged = []
    for start, end in sorted(ranges, key=lambda r: r[0]):
        if merged:
            last_start, last_end = merged[-1]
            if last_end is None:
                # The previous range already runs to the end of the line.
                continue
            if start <= last_end + 1:
                if end is None or end > last_end:
                    merged[-1] = (last_start, end)
                continue
        merged.append((start, end))
    return tuple(merged)

def parse_list(list_str: str) -> tuple:
    """
    Parses a cut-style list string (e.g., "1,5-7,10-") into a canonical
    tuple of (start, end) ranges.

    Positions are 1-based and inclusive. end is None for an 'N-' range,
    which runs to the end of the line; '-M' is the same as '1-M'.
    Overlapping and adjacent ranges are merged, so "1-3,3-5,6-8" gives
    ((1, 8),).

    Raises ValueError for an empty list, a malformed token, a zero
    position, or a decreasing range like '5-2'.
    """
    if not list_str:
        raise ValueError("an empty list is not allowed")

    ranges = []
    for part in list_str.split(','):
        # Case 1: A single number 'N'
        if NUMBER_RE.fullmatch(part):
            num = _position(part)
            ranges.append((num, num))
            continue

        # Case 2: A range like 'N-M', 'N-', or '-M'
        match = RANGE_RE.fullmatch(part)
        if not match or match.group(0) == '-':
            raise ValueError(f"invalid byte/character/field list '{part}'")

        start_str, end_str = match.groups()
        start = _position(start_str) if start_str else 1
        end = _position(end_str) if end_str else None
        if end is not None and start > end:
            raise ValueError(f"invalid decreasing range '{part}'")
        ranges.append((start, end))

    return _merge(ranges)

def format_ranges(ranges) -> str:
    """Renders canonical ranges back into list syntax, e.g. '1-3,5,8-'."""
    parts = []
    for start, end in ranges:
        if end is None:
            parts.append(f"{start}-")
        elif start == end:
            parts.append(str(start))
        else:
            parts.append(f"{start}-{end}")
    return ",".join(parts)

def complement_ranges(ranges) -> tuple:
    """
    Returns the canonical ranges covering every position NOT in ranges.
    No line length is needed: the final gap is left open-ended.
    """
    result = []
    next_start = 1
    for start, end in ranges:
        if start > next_start:
            result.append((next_start, start - 1))
        if end is None:
            return tuple(result)
        next_start = end + 1
    result.append((next_start, None))
    return tuple(result)

def select_positions(seq, ranges):
    """
    Concatenates the selected positions of a str (characters) or bytes
    (raw bytes) line. Slicing clamps ranges that run past the end.
    """
    return seq[:0].join(seq[start - 1:end] for start, end in ranges)

def select_fields(line: str, ranges, delimiter: str, only_delimited: bool = False):
    """
    Splits a line on delimiter and rejoins the selected fields with it.

    A line without the delimiter is returned unchanged, or None when
    only_delimited is set and the line should be dropped.
    """
    if delimiter not in line:
        return None if only_delimited else line

    fields = line.split(delimiter)
    out_fields = []
    for start, end in ranges:
        # Indices past the last field just select nothing.
        out_fields.extend(fields[start - 1:end])
    return delimiter.join(out_fields)

def extract_line(mode: Mode, ranges, delimiter: str, line, only_delimited: bool = False):
    if mode is Mode.FIELDS:
        return select_fields(line, ranges, delimiter, only_delimited)
    return select_positions(line, ranges)

def cut_stream(stream, out, mode: Mode, ranges, delimiter: str = '\t', only_delimited: bool = False):
    """
    Writes the selection from every line of a binary stream to out.
    A failed write raises OutputError, so callers can tell it apart from
    a failure reading the stream.
    """
    for raw in stream:
        if raw.endswith(b'\n'):
            raw = raw[:-1]

        # Bytes mode works on the raw line; the others on decoded text.
        # surrogateescape lets bytes that aren't valid UTF-8 pass through.
        line = raw if mode is Mode.BYTES else raw.decode('utf-8', 'surrogateescape')
        selected = extract_line(mode, ranges, delimiter, line, only_delimited)
        if selected is None:
            continue
        if isinstance(selected, str):
            selected = selected.encode('utf-8', 'surrogateescape')
        try:
            out.write(selected + b'\n')
        except OSError as e:
            raise OutputError(e) from e

def cut_sources(names, out, mode: Mode, ranges, delimiter: str = '\t', only_delimited: bool = False):
    """
    Runs cut_stream over each named source in order ('-' is stdin).

    Yields a (name, error) pair as each source finishes; error is None on
    success, or the OSError that stopped that source. A failed source
    doesn't stop the ones after it; an OutputError stops the whole run.
    """
    for name in names:
        try:
            if name == '-':
                cut_stream(sys.stdin.buffer, out, mode, ranges, delimiter, only_delimited)
            else:
                with open(name, 'rb') as f:
                    cut_stream(f, out, mode, ranges, delimiter, only_delimited)
        except OSError as e:
            yield name, e
        else:
            yield name, None

def _discard_stdout():
    """Points stdout at the null device so the flush at exit can't fail again."""
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())
    os.close(devnull)

def main():
    """Parses arguments and runs the selected extraction over every input."""
    parser = argparse.ArgumentParser(
        description="Select portions of each line of a file.",
        usage="%(prog)s -b list | -c list | -f list [-d delim] [-s] [--complement] [file ...]"
    )
    parser.add_argument('-V', '--version', action='version', version=f'%(prog)s {__version__}')

    # Exactly one of the three modes must be given.
    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument('-b', '--bytes', dest='byte_list', metavar='LIST',
                            help='The list specifies byte positions.')
    mode_group.add_argument('-c', '--chars', dest='char_list', metavar='LIST',
                            help='The list specifies character positions.')
    mode_group.add_argument('-f', '--fields', dest='field_list', metavar='LIST',
                            help='The list specifies fields.')

    # Options that modify field mode.
    parser.add_argument('-d', '--delim', '--delimiter', dest='delimiter', default='\t',
                        help='Use DELIM instead of TAB for field delimiter.')
    parser.add_argument('-s', '--only-delimited', action='store_true',
                        help='Suppress lines with no delimiter characters.')

    parser.add_argument('--complement', action='store_true',
                        help='Select everything except the listed positions or fields.')
    parser.add_argument('files', nargs='*', help='Files to process. Reads from stdin if none are given.')

    args = parser.parse_args()
    program_name = os.path.basename(sys.argv[0])

    if len(args.delimiter) != 1:
        parser.error("the delimiter must be a single character")

    if args.byte_list is not None:
        mode, list_str = Mode.BYTES, args.byte_list
    elif args.char_list is not None:
        mode, list_str = Mode.CHARS, args.char_list
    else:
        mode, list_str = Mode.FIELDS, args.field_list

    try:
        ranges = parse_list(list_str)
    except ValueError as e:
        print(f"{program_name}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.complement:
        ranges = complement_ranges(ranges)

    exit_status = 0
    out = sys.stdout.buffer
    try:
        for name, error in cut_sources(args.files or ['-'], out, mode, ranges,
                                       args.delimiter, args.only_delimited):
            if error is not None:
                out.flush()
                print(f"{program_name}: '{name}': {error.strerror or error}", file=sys.stderr)
                exit_status = 1
        out.flush()
    except OutputError as e:
        write_error = e.error
    except OSError as e:
        # Reads are handled per source, so this is a failed flush.
        write_error = e
    else:
        sys.exit(exit_status)

    _discard_stdout()
    if not isinstance(write_error, BrokenPipeError):
        print(f"{program_name}: write error: {write_error.strerror or write_error}", file=sys.stderr)
        exit_status = 1
    # A closed pipe (e.g. `cut ... | head`) just ends the run quietly.
    sys.exit(exit_status)

if __name__ == "__main__":
    main()
