import struct

READ_REGISTERS = 0x03
EXCEPTION_FLAG = 0x80

PROTOCOL_ID = 0
DEFAULT_UNIT = 1

# transaction id, protocol id, length, unit id
HEADER = struct.Struct('>HHHB')
HEADER_SIZE = HEADER.size

# largest unit id + pdu permitted after the header
MAX_BODY_SIZE = 254


class FrameError(ValueError):
    """ Raised when a response frame is malformed or does not answer the request. """


def encode_read_request(transaction, address, count, unit=DEFAULT_UNIT) -> bytes:
    """ Encodes a request to read `count` registers starting at `address`.

    >>> encode_read_request(1, 64360, 2).hex()
    '0001000000060103fb680002'
    """
    if not 0 <= address <= 0xFFFF:
        raise ValueError("register address out of range: %d" % address)
    if not 1 <= count <= 125:
        raise ValueError("register count out of range: %d" % count)
    pdu = struct.pack('>BHH', READ_REGISTERS, address, count)
    return HEADER.pack(transaction & 0xFFFF, PROTOCOL_ID, len(pdu) + 1, unit) + pdu


def decode_header(data):
    """ Decodes the frame header.
    :return: a tuple (transaction, unit, remaining) where remaining is the number of bytes
        that follow the header.
    """
    if len(data) < HEADER_SIZE:
        raise FrameError("short header: %d bytes" % len(data))
    transaction, protocol, length, unit = HEADER.unpack(data[:HEADER_SIZE])
    if protocol != PROTOCOL_ID:
        raise FrameError("unknown protocol id %d" % protocol)
    if not 2 <= length <= MAX_BODY_SIZE:
        raise FrameError("invalid frame length %d" % length)
    return transaction, unit, length - 1


def decode_read_response(transaction, received, pdu) -> list:
    """ Decodes the body (the bytes following the header) of a read response.

    :param transaction: the transaction id of the request being answered
    :param received: the transaction id in the response header
    :param pdu: the bytes following the header
    :return: the register values

    >>> decode_read_response(7, 7, bytes([3, 4, 0, 1, 0xff, 0xff]))
    [1, 65535]
    """
    if received != transaction & 0xFFFF:
        raise FrameError("response to transaction %d while waiting for %d" % (received, transaction))
    if not pdu:
        raise FrameError("empty response")
    function = pdu[0]
    if function == READ_REGISTERS | EXCEPTION_FLAG:
        code = pdu[1] if len(pdu) > 1 else 0
        raise FrameError("exception response, code %d" % code)
    if function != READ_REGISTERS:
        raise FrameError("unexpected function 0x%02X" % function)
    if len(pdu) < 2:
        raise FrameError("missing byte count")
    count = pdu[1]
    if count % 2 or len(pdu) - 2 != count:
        raise FrameError("byte count %d does not match %d data bytes" % (count, len(pdu) - 2))
    return list(struct.unpack('>%dH' % (count // 2), bytes(pdu[2:])))


def encode_read_response(transaction, registers, unit=DEFAULT_UNIT) -> bytes:
    """ Encodes a response carrying the given register values, as sent by a modem. """
    data = struct.pack('>%dH' % len(registers), *registers)
    pdu = struct.pack('>BB', READ_REGISTERS, len(data)) + data
    return HEADER.pack(transaction & 0xFFFF, PROTOCOL_ID, len(pdu) + 1, unit) + pdu


def signed(value):
    """Convert an unsigned 16-bit register to the corresponding 2's complement signed value.

    >>> signed(0)
    0
    >>> signed(65535)
    -1
    >>> signed(32767)
    32767
    """
    return value if value < 0x8000 else value - 0x10000
