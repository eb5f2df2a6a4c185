KB = float(1 << 10)
MB = float(1 << 20)
GB = float(1 << 30)
TB = float(1 << 40)
PB = float(1 << 50)

_UNITS = (
    (PB, "PB"),
    (TB, "TB"),
    (GB, "GB"),
    (MB, "MB"),
    (KB, "KB"),
)


class ByteSize(float):
    """
    Raw byte count that renders with power-of-1024 units.

    Arithmetic is plain float arithmetic on bytes; only str() scales.
    """

    def __str__(self) -> str:
        for threshold, suffix in _UNITS:
            if self >= threshold:
                return f"{self / threshold:.2f} {suffix}"
        return f"{float(self):.2f} B"

    def __add__(self, other):
        return ByteSize(float(self) + float(other))

    __radd__ = __add__

    def __sub__(self, other):
        return ByteSize(float(self) - float(other))
