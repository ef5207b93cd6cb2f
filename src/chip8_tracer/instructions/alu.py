# chip8_tracer/instructions/alu.py
"""
算術論理命令 (7XNN, 8XY0-8XYE) の実装。

フラグを生成する命令では、VFはオペランドの変更前の値から計算し、
VFを書き込んだ後にデスティネーションレジスタを書き込みます。
"""
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.core.state import REGISTER_VF
from chip8_tracer.instructions.base import (
    ExecutionContext, field_x, field_y, field_nn,
    reg, byte_operand, make_operation,
)

def _xy(op: Operation):
    return field_x(op.opcode), field_y(op.opcode)

def _decode_xy(opcode: int, pattern: str, mnemonic: str) -> Operation:
    return make_operation(opcode, pattern, mnemonic, [reg(field_x(opcode)), reg(field_y(opcode))])

# --- ADD Vx, byte (7XNN) ---
def decode_add_byte(opcode: int) -> Operation:
    return make_operation(opcode, "7XNN", "ADD", [reg(field_x(opcode)), byte_operand(field_nn(opcode))])

# @intent:responsibility 8bitの折り返し加算を行います。VFは変化しません。
def execute_add_byte(ctx: ExecutionContext, op: Operation) -> None:
    x = field_x(op.opcode)
    ctx.state.v[x] = (ctx.state.v[x] + field_nn(op.opcode)) & 0xFF

# --- LD Vx, Vy (8XY0) ---
def decode_ld_reg(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY0", "LD")

def execute_ld_reg(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    ctx.state.v[x] = ctx.state.v[y]

# --- OR Vx, Vy (8XY1) ---
def decode_or(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY1", "OR")

def execute_or(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    ctx.state.v[x] |= ctx.state.v[y]

# --- AND Vx, Vy (8XY2) ---
def decode_and(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY2", "AND")

def execute_and(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    ctx.state.v[x] &= ctx.state.v[y]

# --- XOR Vx, Vy (8XY3) ---
def decode_xor(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY3", "XOR")

def execute_xor(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    ctx.state.v[x] ^= ctx.state.v[y]

# --- ADD Vx, Vy (8XY4) ---
def decode_add_reg(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY4", "ADD")

# @intent:responsibility 加算し、和が255を超えた場合にVF=1とします。
def execute_add_reg(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    v = ctx.state.v
    total = v[x] + v[y]
    v[REGISTER_VF] = 1 if total > 0xFF else 0
    v[x] = total & 0xFF

# --- SUB Vx, Vy (8XY5) ---
def decode_sub(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY5", "SUB")

# @intent:responsibility Vx - Vy。ボローが無い場合 (Vx >= Vy) にVF=1とします。
def execute_sub(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    v = ctx.state.v
    vx, vy = v[x], v[y]
    v[REGISTER_VF] = 1 if vx >= vy else 0
    v[x] = (vx - vy) & 0xFF

# --- SHR Vx (8XY6) ---
def decode_shr(opcode: int) -> Operation:
    return make_operation(opcode, "8XY6", "SHR", [reg(field_x(opcode))])

# @intent:responsibility Vxを1bit論理右シフトし、シフトアウトしたLSBをVFに格納します。
def execute_shr(ctx: ExecutionContext, op: Operation) -> None:
    x = field_x(op.opcode)
    v = ctx.state.v
    vx = v[x]
    v[REGISTER_VF] = vx & 0x01
    v[x] = vx >> 1

# --- SUBN Vx, Vy (8XY7) ---
def decode_subn(opcode: int) -> Operation:
    return _decode_xy(opcode, "8XY7", "SUBN")

# @intent:responsibility Vy - Vx をVxに格納します。ボローが無い場合 (Vy >= Vx) にVF=1とします。
def execute_subn(ctx: ExecutionContext, op: Operation) -> None:
    x, y = _xy(op)
    v = ctx.state.v
    vx, vy = v[x], v[y]
    v[REGISTER_VF] = 1 if vy >= vx else 0
    v[x] = (vy - vx) & 0xFF

# --- SHL Vx (8XYE) ---
def decode_shl(opcode: int) -> Operation:
    return make_operation(opcode, "8XYE", "SHL", [reg(field_x(opcode))])

# @intent:responsibility Vxを1bit左シフトし、シフトアウトしたMSBをVFに格納します。
def execute_shl(ctx: ExecutionContext, op: Operation) -> None:
    x = field_x(op.opcode)
    v = ctx.state.v
    vx = v[x]
    v[REGISTER_VF] = (vx & 0x80) >> 7
    v[x] = (vx << 1) & 0xFF
