# chip8_tracer/instructions/keyinput.py
"""
キー入力命令 (EX9E, EXA1, FX0A) の実装。
"""
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.core.state import ExecutionMode
from chip8_tracer.instructions.base import (
    ExecutionContext, field_x, reg, make_operation, skip_next,
)

# --- SKP Vx (EX9E) ---
def decode_skp(opcode: int) -> Operation:
    return make_operation(opcode, "EX9E", "SKP", [reg(field_x(opcode))])

# @intent:responsibility Vxの下位4bitが示すキーが押されていれば次の命令をスキップします。
def execute_skp(ctx: ExecutionContext, op: Operation) -> None:
    key = ctx.state.v[field_x(op.opcode)] & 0xF
    if ctx.keypad.is_pressed(key):
        skip_next(ctx.state)

# --- SKNP Vx (EXA1) ---
def decode_sknp(opcode: int) -> Operation:
    return make_operation(opcode, "EXA1", "SKNP", [reg(field_x(opcode))])

def execute_sknp(ctx: ExecutionContext, op: Operation) -> None:
    key = ctx.state.v[field_x(op.opcode)] & 0xF
    if not ctx.keypad.is_pressed(key):
        skip_next(ctx.state)

# --- LD Vx, K (FX0A) ---
def decode_wait_key(opcode: int) -> Operation:
    return make_operation(opcode, "FX0A", "LD", [reg(field_x(opcode)), "K"])

# @intent:responsibility キー入力待ち状態に遷移します。
# @intent:post-condition 以降のstep()は、新たなキー押下が報告されるまで命令をフェッチしません。
def execute_wait_key(ctx: ExecutionContext, op: Operation) -> None:
    # 待ち開始前に押されていたキーでは再開しない
    ctx.keypad.clear_presses()
    ctx.state.mode = ExecutionMode.AWAITING_KEY
    ctx.state.key_register = field_x(op.opcode)
