"""A unit with no export named after the file."""

SCALE = 3


def triple(x: int) -> int:
    return x * SCALE
