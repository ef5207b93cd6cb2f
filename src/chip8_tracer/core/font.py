# chip8_tracer/core/font.py
"""
組み込みフォント（16進数字 0-F の4x5ドットグリフ）の定義とメモリへの配置。
"""
from chip8_tracer.transport.bus import Bus

# @intent:constant フォント領域の先頭アドレスとグリフ1文字あたりのバイト数。
FONT_START = 0x050
FONT_GLYPH_SIZE = 5

# @intent:constant 各行の上位4bitがドットを表す16文字分のグリフ。
FONT_SET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

FONT_END = FONT_START + len(FONT_SET) - 1  # 0x09F


# @intent:responsibility 指定された16進数字のグリフ先頭アドレスを返します。
def glyph_address(digit: int) -> int:
    return FONT_START + FONT_GLYPH_SIZE * (digit & 0xF)


# @intent:responsibility フォントセットをバス上の予約領域 (0x050-0x09F) にコピーします。
def seed_font(bus: Bus) -> None:
    for offset, value in enumerate(FONT_SET):
        bus.load(FONT_START + offset, value)
