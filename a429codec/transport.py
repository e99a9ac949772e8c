"""
ARINC 429 transport interface and in-memory loopback.

The codec only produces and consumes 32-bit words; moving them on and off
the bus is the job of a transport. This module defines that contract and a
loopback implementation that behaves like a dual-receiver, single-transmitter
interface chip wired back onto itself:

- ArincTransport: abstract interface (write/read words, poll FIFOs,
  configure receivers)
- LoopbackTransport: every transmitted word reaches both receive channels,
  subject to each channel's label filter
- build_label_filter / label_filter_accepts: 32-byte label filter bitmaps

Parity is generated and checked by the hardware, so words pass through
untouched.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Union

from .core.labels import parse_label, wire_to_label

logger = logging.getLogger(__name__)

RX_CHANNELS = (0, 1)
FIFO_DEPTH = 32
LABEL_FILTER_BYTES = 32

# Receive control register bits
RX_CTRL_RATE_LOW = 0x01  # low-speed (12.5 kbps) reception
RX_CTRL_LABEL_RECOGNITION = 0x04  # apply the label filter


class FifoEmptyError(RuntimeError):
    """Raised when reading from an empty receive FIFO."""


def build_label_filter(labels: Iterable[Union[int, str]]) -> bytes:
    """
    Build a 32-byte label filter bitmap.

    The first byte covers labels 377 down to 370 (bit 7 = label 377), the
    last byte labels 007 down to 000 (bit 0 = label 000).

    Args:
        labels: Label numbers (0-255) or octal text ('203')

    Returns:
        32-byte bitmap with a bit set for every accepted label
    """
    bitmap = bytearray(LABEL_FILTER_BYTES)

    for label in labels:
        if isinstance(label, str):
            label = parse_label(label)
        if not (0 <= label <= 0xFF):
            raise ValueError(f"Label number must be 0-255, got {label}")
        bitmap[LABEL_FILTER_BYTES - 1 - (label >> 3)] |= 1 << (label & 0x7)

    return bytes(bitmap)


def label_filter_accepts(bitmap: bytes, label: int) -> bool:
    """Check whether a label filter bitmap accepts a label number."""
    return bool(bitmap[LABEL_FILTER_BYTES - 1 - (label >> 3)] & (1 << (label & 0x7)))


def _check_channel(channel: int) -> None:
    if channel not in RX_CHANNELS:
        raise ValueError(f"Receive channel must be one of {RX_CHANNELS}, got {channel}")


class ArincTransport(ABC):
    """
    Abstract interface for ARINC 429 transports.

    Implementations move raw 32-bit words; they handle parity and line
    framing. ARINC 429 is a broadcast bus with no acknowledgment, so
    write_word never reports delivery.
    """

    @abstractmethod
    def write_word(self, word: int) -> None:
        """Enqueue a word for transmission."""

    @abstractmethod
    def read_word(self, channel: int) -> int:
        """
        Dequeue a received word.

        Raises:
            FifoEmptyError: If the channel has nothing to read
        """

    @abstractmethod
    def fifo_empty(self, channel: int) -> bool:
        """Check whether a receive channel's FIFO is empty."""

    @abstractmethod
    def set_receive_control(self, channel: int, control_word: int) -> None:
        """Write a receive channel's control register."""

    @abstractmethod
    def set_label_filter(self, channel: int, bitmap: bytes) -> None:
        """Upload a 32-byte label filter for a receive channel."""

    def read_all(self, channel: int) -> List[int]:
        """Drain a receive channel, polling before each read."""
        words = []
        while not self.fifo_empty(channel):
            words.append(self.read_word(channel))
        return words


class LoopbackTransport(ArincTransport):
    """
    Transport whose transmitter is wired to both of its receivers.

    Useful for exercising encode -> transmit -> receive -> decode paths
    without hardware. A full receive FIFO drops newly arriving words, as
    the hardware does.
    """

    def __init__(self, fifo_depth: int = FIFO_DEPTH):
        """
        Initialize the loopback.

        Args:
            fifo_depth: Receive FIFO depth in words per channel
        """
        if fifo_depth <= 0:
            raise ValueError(f"FIFO depth must be positive, got {fifo_depth}")

        self.fifo_depth = fifo_depth
        self.tx_count = 0
        self.dropped: Dict[int, int] = {}
        self._fifos: Dict[int, Deque[int]] = {}
        self._control: Dict[int, int] = {}
        self._filters: Dict[int, Optional[bytes]] = {}
        self.reset()

    def reset(self) -> None:
        """Clear FIFOs, receiver configuration and counters."""
        self.tx_count = 0
        for channel in RX_CHANNELS:
            self._fifos[channel] = deque()
            self._control[channel] = 0
            self._filters[channel] = None
            self.dropped[channel] = 0

    def write_word(self, word: int) -> None:
        if not (0 <= word <= 0xFFFFFFFF):
            raise ValueError(f"ARINC word must be 32-bit unsigned, got {word}")

        self.tx_count += 1
        label = wire_to_label(word & 0xFF)

        for channel in RX_CHANNELS:
            if not self._accepts(channel, label):
                logger.debug("RX%d: label %03o filtered out", channel, label)
                continue

            fifo = self._fifos[channel]
            if len(fifo) >= self.fifo_depth:
                self.dropped[channel] += 1
                logger.warning("RX%d: FIFO full, dropped word 0x%08X", channel, word)
                continue

            fifo.append(word)

    def read_word(self, channel: int) -> int:
        _check_channel(channel)
        fifo = self._fifos[channel]
        if not fifo:
            raise FifoEmptyError(f"Receive FIFO {channel} is empty")
        return fifo.popleft()

    def fifo_empty(self, channel: int) -> bool:
        _check_channel(channel)
        return not self._fifos[channel]

    def set_receive_control(self, channel: int, control_word: int) -> None:
        _check_channel(channel)
        if not (0 <= control_word <= 0xFF):
            raise ValueError(f"Control word must be 0-255, got {control_word}")
        self._control[channel] = control_word
        logger.debug("RX%d: control register set to 0x%02X", channel, control_word)

    def set_label_filter(self, channel: int, bitmap: bytes) -> None:
        _check_channel(channel)
        if len(bitmap) != LABEL_FILTER_BYTES:
            raise ValueError(
                f"Label filter must be {LABEL_FILTER_BYTES} bytes, got {len(bitmap)}"
            )
        self._filters[channel] = bytes(bitmap)

    def pending(self, channel: int) -> int:
        """Number of words waiting in a receive FIFO."""
        _check_channel(channel)
        return len(self._fifos[channel])

    def _accepts(self, channel: int, label: int) -> bool:
        if not self._control[channel] & RX_CTRL_LABEL_RECOGNITION:
            return True
        bitmap = self._filters[channel]
        # Recognition enabled with no filter uploaded accepts nothing
        if bitmap is None:
            return False
        return label_filter_accepts(bitmap, label)
