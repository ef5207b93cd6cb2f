# chip8_tracer/instructions/load.py
"""
ロード/ストア命令（レジスタ、インデックスレジスタ、タイマ、メモリ転送）の実装。
"""
from chip8_tracer.core.font import glyph_address
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.instructions.base import (
    ExecutionContext, field_x, field_nn, field_nnn,
    reg, byte_operand, addr_operand, make_operation,
)

# --- LD Vx, byte (6XNN) ---
def decode_ld_byte(opcode: int) -> Operation:
    return make_operation(opcode, "6XNN", "LD", [reg(field_x(opcode)), byte_operand(field_nn(opcode))])

def execute_ld_byte(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.v[field_x(op.opcode)] = field_nn(op.opcode)

# --- LD I, addr (ANNN) ---
def decode_ld_i(opcode: int) -> Operation:
    return make_operation(opcode, "ANNN", "LD", ["I", addr_operand(field_nnn(opcode))])

def execute_ld_i(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.i = field_nnn(op.opcode)

# --- RND Vx, byte (CXNN) ---
def decode_rnd(opcode: int) -> Operation:
    return make_operation(opcode, "CXNN", "RND", [reg(field_x(opcode)), byte_operand(field_nn(opcode))])

# @intent:responsibility 注入された乱数源から1バイト取得し、NNとのANDをVxに格納します。
def execute_rnd(ctx: ExecutionContext, op: Operation) -> None:
    value = ctx.random_source.next_byte() & 0xFF
    ctx.state.v[field_x(op.opcode)] = value & field_nn(op.opcode)

# --- LD Vx, DT (FX07) ---
def decode_ld_vx_dt(opcode: int) -> Operation:
    return make_operation(opcode, "FX07", "LD", [reg(field_x(opcode)), "DT"])

def execute_ld_vx_dt(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.v[field_x(op.opcode)] = ctx.state.delay_timer

# --- LD DT, Vx (FX15) ---
def decode_ld_dt(opcode: int) -> Operation:
    return make_operation(opcode, "FX15", "LD", ["DT", reg(field_x(opcode))])

def execute_ld_dt(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.delay_timer = ctx.state.v[field_x(op.opcode)]

# --- LD ST, Vx (FX18) ---
def decode_ld_st(opcode: int) -> Operation:
    return make_operation(opcode, "FX18", "LD", ["ST", reg(field_x(opcode))])

def execute_ld_st(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.sound_timer = ctx.state.v[field_x(op.opcode)]

# --- ADD I, Vx (FX1E) ---
def decode_add_i(opcode: int) -> Operation:
    return make_operation(opcode, "FX1E", "ADD", ["I", reg(field_x(opcode))])

# @intent:responsibility 16bitの折り返し加算。VFは変化しません。
def execute_add_i(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.i = (ctx.state.i + ctx.state.v[field_x(op.opcode)]) & 0xFFFF

# --- LD F, Vx (FX29) ---
def decode_ld_f(opcode: int) -> Operation:
    return make_operation(opcode, "FX29", "LD", ["F", reg(field_x(opcode))])

# @intent:responsibility Vxの下位4bitが示す16進数字のフォントグリフをIに設定します。
def execute_ld_f(ctx: ExecutionContext, op: Operation) -> None:
    ctx.state.i = glyph_address(ctx.state.v[field_x(op.opcode)])

# --- LD B, Vx (FX33) ---
def decode_ld_b(opcode: int) -> Operation:
    return make_operation(opcode, "FX33", "LD", ["B", reg(field_x(opcode))])

# @intent:responsibility Vxを10進3桁に分解し、百の位から順に [I], [I+1], [I+2] に格納します。
def execute_ld_b(ctx: ExecutionContext, op: Operation) -> None:
    value = ctx.state.v[field_x(op.opcode)]
    base = ctx.state.i
    ctx.bus.write(base, value // 100)
    ctx.bus.write(base + 1, (value // 10) % 10)
    ctx.bus.write(base + 2, value % 10)

# --- LD [I], Vx (FX55) ---
def decode_store_regs(opcode: int) -> Operation:
    return make_operation(opcode, "FX55", "LD", ["[I]", reg(field_x(opcode))])

# @intent:responsibility V0..Vx (両端を含む) を I から始まるメモリに格納します。Iは変化しません。
def execute_store_regs(ctx: ExecutionContext, op: Operation) -> None:
    base = ctx.state.i
    for index in range(field_x(op.opcode) + 1):
        ctx.bus.write(base + index, ctx.state.v[index])

# --- LD Vx, [I] (FX65) ---
def decode_load_regs(opcode: int) -> Operation:
    return make_operation(opcode, "FX65", "LD", [reg(field_x(opcode)), "[I]"])

# @intent:responsibility I から始まるメモリを V0..Vx (両端を含む) に読み込みます。Iは変化しません。
def execute_load_regs(ctx: ExecutionContext, op: Operation) -> None:
    base = ctx.state.i
    for index in range(field_x(op.opcode) + 1):
        ctx.state.v[index] = ctx.bus.read(base + index)
