"""
CHIP-8命令セット実装パッケージ。
"""
from typing import Optional

from chip8_tracer.core.errors import DecodeError
from chip8_tracer.core.snapshot import Operation
from .base import ExecutionContext
from .maps import DECODE_MAP, EXECUTE_MAP, SELECTOR_MASKS

# @intent:responsibility 16bitの命令語をデコードし、Operationオブジェクトを返します。
# @intent:post-condition 一致する命令が無い場合はDecodeErrorを送出します。
def decode_opcode(opcode: int, pc: Optional[int] = None) -> Operation:
    """
    先頭ニブルでファミリを選択し、0x0/0x8/0xE/0xF ファミリでは
    下位ニブルまたは下位バイトで命令を選択します。
    """
    family = (opcode >> 12) & 0xF
    mask = SELECTOR_MASKS.get(family)
    selector = opcode & mask if mask is not None else None
    decoder = DECODE_MAP.get((family, selector))
    if decoder is None:
        raise DecodeError(opcode, pc)
    return decoder(opcode)

# @intent:responsibility デコードされた命令を実行し、CPUの状態を変更します。
def execute_instruction(operation: Operation, context: ExecutionContext) -> None:
    executor = EXECUTE_MAP.get(operation.pattern)
    if executor is None:
        raise DecodeError(operation.opcode)
    executor(context, operation)
