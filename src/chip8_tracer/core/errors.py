# chip8_tracer/core/errors.py
"""
Core Layer (例外定義)

このモジュールは、命令サイクル中に発生しうる異常状態を型付きの例外として定義します。
いずれもプロセスを終了させるものではなく、step()の呼び出し元（ホストやデバッガ）が
セッションを停止するか、状態を修正して再試行するかを判断します。
"""
from typing import Optional


# @intent:responsibility CHIP-8コアが送出する全ての例外の基底クラスです。
class Chip8Error(Exception):
    """
    CHIP-8エミュレーションコアの例外基底クラス。
    """
    pass


# @intent:responsibility 未定義のオペコード、またはファミリ内で一致しないサブセレクタを表します。
class DecodeError(Chip8Error, ValueError):
    def __init__(self, opcode: int, address: Optional[int] = None):
        self.opcode = opcode
        self.address = address
        where = f" at {address:#05x}" if address is not None else ""
        super().__init__(f"Unknown opcode {opcode:#06x}{where}.")


# @intent:responsibility 空のコールスタックからのリターンを表します。
class StackUnderflow(Chip8Error):
    def __init__(self, message: str = "Return with an empty call stack."):
        super().__init__(message)


# @intent:responsibility 容量を超えるサブルーチン呼び出しを表します。
class StackOverflow(Chip8Error):
    def __init__(self, capacity: int, address: Optional[int] = None):
        self.capacity = capacity
        self.address = address
        super().__init__(f"Call stack overflow: capacity of {capacity} return addresses exceeded.")


# @intent:responsibility 4096バイトのアドレス空間外へのアクセスを表します。
# IndexError を継承するため、except IndexError でも捕捉できます。
class MemoryOutOfBounds(Chip8Error, IndexError):
    def __init__(self, address: int, message: Optional[str] = None):
        self.address = address
        super().__init__(message or f"Address {address:#06x} is outside the addressable memory.")


# @intent:responsibility 意図的に実装を保留している命令を表します。
class UnimplementedInstruction(Chip8Error, NotImplementedError):
    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(f"Instruction {opcode:#06x} is not implemented.")
