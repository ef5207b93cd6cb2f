# chip8_tracer/instructions/control.py
"""
制御命令（ジャンプ、サブルーチン、条件スキップ）の実装。

実行関数が呼ばれる時点で、PCは既に次の命令 (フェッチ位置 + 2) を指しています。
"""
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.instructions.base import (
    ExecutionContext, field_x, field_y, field_nn, field_nnn,
    reg, byte_operand, addr_operand, make_operation, skip_next,
)

# --- RET (00EE) ---
def decode_ret(opcode: int) -> Operation:
    return make_operation(opcode, "00EE", "RET", [])

# @intent:responsibility スタックから戻りアドレスを取り出してPCに設定します。空の場合はStackUnderflow。
def execute_ret(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.pc = ctx.state.stack.pop()

# --- JP addr (1NNN) ---
def decode_jp(opcode: int) -> Operation:
    return make_operation(opcode, "1NNN", "JP", [addr_operand(field_nnn(opcode))])

def execute_jp(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.pc = field_nnn(op.opcode)

# --- CALL addr (2NNN) ---
def decode_call(opcode: int) -> Operation:
    return make_operation(opcode, "2NNN", "CALL", [addr_operand(field_nnn(opcode))])

# @intent:responsibility 戻りアドレス（CALLの次の命令）をプッシュしてからジャンプします。
def execute_call(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.stack.push(ctx.state.pc)
    ctx.state.pc = field_nnn(op.opcode)

# --- SE Vx, byte (3XNN) ---
def decode_se_byte(opcode: int) -> Operation:
    return make_operation(opcode, "3XNN", "SE", [reg(field_x(opcode)), byte_operand(field_nn(opcode))])

def execute_se_byte(ctx: ExecutionContext, op: Operation) -> None:
    if ctx.state.v[field_x(op.opcode)] == field_nn(op.opcode):
        skip_next(ctx.state)

# --- SNE Vx, byte (4XNN) ---
def decode_sne_byte(opcode: int) -> Operation:
    return make_operation(opcode, "4XNN", "SNE", [reg(field_x(opcode)), byte_operand(field_nn(opcode))])

def execute_sne_byte(ctx: ExecutionContext, op: Operation) -> None:
    if ctx.state.v[field_x(op.opcode)] != field_nn(op.opcode):
        skip_next(ctx.state)

# --- SE Vx, Vy (5XY0) ---
def decode_se_reg(opcode: int) -> Operation:
    return make_operation(opcode, "5XY0", "SE", [reg(field_x(opcode)), reg(field_y(opcode))])

def execute_se_reg(ctx: ExecutionContext, op: Operation) -> None:
    v = ctx.state.v
    if v[field_x(op.opcode)] == v[field_y(op.opcode)]:
        skip_next(ctx.state)

# --- SNE Vx, Vy (9XY0) ---
def decode_sne_reg(opcode: int) -> Operation:
    return make_operation(opcode, "9XY0", "SNE", [reg(field_x(opcode)), reg(field_y(opcode))])

def execute_sne_reg(ctx: ExecutionContext, op: Operation) -> None:
    v = ctx.state.v
    if v[field_x(op.opcode)] != v[field_y(op.opcode)]:
        skip_next(ctx.state)

# --- JP V0, addr (BNNN) ---
def decode_jp_v0(opcode: int) -> Operation:
    return make_operation(opcode, "BNNN", "JP", ["V0", addr_operand(field_nnn(opcode))])

def execute_jp_v0(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.pc = (field_nnn(op.opcode) + ctx.state.v[0]) & 0xFFFF
