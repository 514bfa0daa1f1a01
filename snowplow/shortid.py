"""Short, unique, non-sequential and URL friendly identifiers.

Each id encodes the millisecond since the generator's epoch (first 8
symbols), the worker number (9th symbol) and, only when several ids are
requested within the same millisecond, a running counter (remaining
symbols).
"""

from __future__ import annotations

import math
import secrets
import threading
import time
from datetime import datetime, timedelta, timezone

__all__ = [
    "DEFAULT_ABC",
    "Abc",
    "ShortId",
    "get_default",
    "set_default",
    "generate",
]

DEFAULT_ABC = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_-"

_DEFAULT_EPOCH = datetime(2016, 1, 1, tzinfo=timezone.utc)
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UINT64_MASK = (1 << 64) - 1


def _masked_random_ints(size: int, mask: int) -> list[int]:
    return [b & mask for b in secrets.token_bytes(size)]


def _elapsed_ms(later: datetime, earlier: datetime) -> int:
    delta = later - earlier
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros < 0:
        raise ValueError("time precedes the generator epoch")
    return micros // 1000


class Abc:
    """A shuffled alphabet of 64 unique symbols used to encode ids."""

    def __init__(self, alphabet: str, seed: int) -> None:
        if len(alphabet) != len(DEFAULT_ABC):
            raise ValueError(
                f"alphabet must contain {len(DEFAULT_ABC)} unique characters"
            )
        if len(set(alphabet)) < len(alphabet):
            raise ValueError("alphabet must contain unique characters only")
        self._alphabet = self._shuffle(alphabet, seed)

    @staticmethod
    def _shuffle(alphabet: str, seed: int) -> str:
        source = list(alphabet)
        result: list[str] = []
        while len(source) > 1:
            seed = ((seed * 9301 + 49297) & _UINT64_MASK) % 233280
            index = (seed * len(source)) // 233280
            result.append(source.pop(index))
        result.append(source[0])
        return "".join(result)

    @property
    def alphabet(self) -> str:
        """The shuffled alphabet."""
        return self._alphabet

    def encode(self, val: int, nsymbols: int, digits: int) -> str:
        """Encode ``val`` into ``nsymbols`` symbols (0 means as many as needed).

        ``digits`` in [4, 6] is the number of value bits per symbol; the
        remaining bits of each symbol index are random.
        """
        if digits < 4 or digits > 6:
            raise ValueError(f"allowed digits range [4,6], found {digits}")
        if val < 0:
            raise ValueError("value must not be negative")

        computed_size = 1
        if val >= 1:
            computed_size = int(math.log2(float(val))) // digits + 1
        if nsymbols == 0:
            nsymbols = computed_size
        elif nsymbols < computed_size:
            raise ValueError(
                f"cannot accommodate data, need {computed_size} digits, got {nsymbols}"
            )

        mask = (1 << digits) - 1
        if digits < 6:
            random = _masked_random_ints(nsymbols, 0x3F - mask)
        else:
            random = [0] * nsymbols

        return "".join(
            self._alphabet[((val >> (digits * i)) & mask) | rnd]
            for i, rnd in enumerate(random)
        )

    def __str__(self) -> str:
        return f"Abc{{alphabet='{self._alphabet}')"

    def __repr__(self) -> str:
        return str(self)


class ShortId:
    """A thread-safe short id generator for one worker and alphabet."""

    def __init__(self, worker: int, alphabet: str, seed: int) -> None:
        if worker < 0 or worker > 31:
            raise ValueError("expected worker in the range [0,31]")
        self._abc = Abc(alphabet, seed)
        self._worker = worker
        self._epoch = _DEFAULT_EPOCH
        self._ms = 0
        self._count = 0
        self._lock = threading.Lock()

    @property
    def abc(self) -> Abc:
        """The alphabet used to represent ids."""
        return self._abc

    @property
    def epoch(self) -> datetime:
        """The start of millisecond counting."""
        return self._epoch

    @property
    def worker(self) -> int:
        """The worker number of this generator."""
        return self._worker

    def generate(self) -> str:
        """Generate a new short id."""
        return self.generate_internal(None, self._epoch)

    def generate_internal(self, tm: datetime | None, epoch: datetime) -> str:
        """Generate an id for time ``tm`` (now if None) counted from ``epoch``."""
        ms, count = self._ms_and_counter(tm, epoch)
        ident = self._abc.encode(ms, 8, 5) + self._abc.encode(self._worker, 1, 5)
        if count > 0:
            ident += self._abc.encode(count, 0, 6)
        return ident

    def _ms_and_counter(self, tm: datetime | None, epoch: datetime) -> tuple[int, int]:
        if tm is not None:
            ms = _elapsed_ms(tm, epoch)
        else:
            epoch_ns = _elapsed_ms(epoch, _UNIX_EPOCH) * 1_000_000 if epoch >= _UNIX_EPOCH else (
                -((_UNIX_EPOCH - epoch) // timedelta(microseconds=1)) * 1000
            )
            elapsed = time.time_ns() - epoch_ns
            if elapsed < 0:
                raise ValueError("time precedes the generator epoch")
            ms = elapsed // 1_000_000
        with self._lock:
            if ms == self._ms:
                self._count += 1
            else:
                self._count = 0
                self._ms = ms
            return self._ms, self._count

    def __str__(self) -> str:
        epoch = self._epoch.strftime("%Y-%m-%d %H:%M:%S %z %Z")
        return f"ShortId(worker={self._worker}, epoch={epoch}, abc={self._abc})"

    def __repr__(self) -> str:
        return str(self)


_default_lock = threading.Lock()
_default = ShortId(0, DEFAULT_ABC, 1)


def get_default() -> ShortId:
    """Return the default generator (worker 0, default alphabet, seed 1)."""
    with _default_lock:
        return _default


def set_default(sid: ShortId) -> None:
    """Replace the default generator."""
    global _default
    with _default_lock:
        _default = sid


def generate() -> str:
    """Generate an id using the default generator."""
    return get_default().generate()