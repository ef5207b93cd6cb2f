# chip8_tracer/core/disassembler.py
"""
CHIP-8 Disassembler

メモリ上のバイナリデータを解析し、CHIP-8のアセンブリ表記（ニーモニック）に変換します。
Instruction Layerのデコードロジックを再利用しますが、バスアクセスログを汚さないように
peek で読み出します。
"""
from typing import List, Tuple

from chip8_tracer.core.errors import DecodeError
from chip8_tracer.instructions import decode_opcode
from chip8_tracer.transport.bus import Bus

# @intent:responsibility 指定されたメモリ範囲を逆アセンブルし、表示用データを生成します。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    指定された範囲のメモリを2バイト単位で逆アセンブルします。
    デコードできない命令語は "DW $XXXX"、範囲末尾の端数バイトは "DB $XX" と表記します。

    Returns:
        List of (address, hex_bytes, mnemonic) tuples.
    """
    result = []
    current_addr = start_addr
    end_addr = min(start_addr + length, bus.get_address_limit())

    while current_addr < end_addr:
        high = bus.peek(current_addr)
        if current_addr + 1 >= end_addr:
            result.append((current_addr, f"{high:02X}", f"DB ${high:02X}"))
            break

        low = bus.peek(current_addr + 1)
        opcode = (high << 8) | low
        try:
            text = decode_opcode(opcode, current_addr).text()
        except DecodeError:
            text = f"DW ${opcode:04X}"

        result.append((current_addr, f"{high:02X} {low:02X}", text))
        current_addr += 2

    return result
