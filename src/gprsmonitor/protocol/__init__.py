"""
Command and response frames exchanged with the modems.

The modems expose a register space: each request reads a block of 16-bit registers starting at
a fixed address, framed Modbus/TCP style (MBAP header, function code, start address, count).
"""
