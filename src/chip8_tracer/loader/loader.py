# chip8_tracer/loader/loader.py
"""
プログラムローダーモジュール。
ヘッダを持たない生のCHIP-8プログラムイメージをメモリに配置します。
"""
from pathlib import Path
from typing import Union

from chip8_tracer.core.errors import MemoryOutOfBounds
from chip8_tracer.core.state import PROGRAM_START
from chip8_tracer.transport.bus import Bus

class ProgramLoader:
    """
    バイト列をプログラム開始アドレスから順にバスへコピーするローダー。
    """
    # @intent:responsibility プログラムイメージを origin から書き込み、書き込んだバイト数を返します。
    # @intent:pre-condition origin + len(data) がアドレス空間に収まる必要があります。
    def load_bytes(self, data: bytes, bus: Bus, origin: int = PROGRAM_START) -> int:
        """
        範囲外となる場合は何も書き込まずに MemoryOutOfBounds を送出します。
        """
        data = bytes(data)
        limit = bus.get_address_limit()
        end = origin + len(data)
        if origin < 0 or end > limit:
            raise MemoryOutOfBounds(
                end - 1 if data else origin,
                f"Program of {len(data)} bytes at {origin:#05x} exceeds memory size of {limit} bytes.",
            )

        for offset, value in enumerate(data):
            bus.load(origin + offset, value)
        return len(data)

    # @intent:responsibility ROMファイルを読み込み、load_bytes に委譲します。
    def load_file(self, file_path: Union[str, Path], bus: Bus, origin: int = PROGRAM_START) -> int:
        with open(file_path, 'rb') as f:
            data = f.read()
        return self.load_bytes(data, bus, origin)
