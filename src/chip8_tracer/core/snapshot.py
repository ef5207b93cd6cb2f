# chip8_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令サイクル後のCPU・バス・フレームバッファの状態を記録した
不変のデータ構造を定義します。トレース出力とデバッガの履歴に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from chip8_tracer.core.state import Chip8CpuState
from chip8_tracer.transport.bus import BusAccessType, BusAccess

# @intent:responsibility デコードされた命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    """
    デコードされた命令の詳細（HEX、ニーモニック、オペランド、命令パターン）を記録するデータクラス。
    """
    opcode_hex: str # 例: "8014"
    mnemonic: str # 例: "ADD"
    operands: List[str] = field(default_factory=list) # 例: ["V0", "V1"]
    pattern: str = "" # 例: "8XY4"
    opcode: int = 0
    cycle_count: int = 1
    length: int = 2 # 命令のバイト長

    # @intent:responsibility "ADD V0, V1" のような表示用文字列を返します。
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {', '.join(self.operands)}"
        return self.mnemonic

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    cycle_count: int
    symbol_info: Optional[str] = None # 例: "0x200: LD V0, $0A"
    step_count: int = 0

# @intent:responsibility ある一時点におけるCPU・バス・表示の状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    state はステップ実行後の状態のコピーであり、以降のCPU状態の変化の影響を受けません。
    framebuffer はステップ実行後のピクセル列 (行優先) です。
    """
    state: Chip8CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
    framebuffer: bytes = b""

    # @intent:responsibility このステップで書き込まれたアドレスの一覧を返します。
    def written_addresses(self) -> List[int]:
        return [a.address for a in self.bus_activity if a.access_type == BusAccessType.WRITE]
