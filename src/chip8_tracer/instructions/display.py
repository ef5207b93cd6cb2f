# chip8_tracer/instructions/display.py
"""
表示命令 (00E0, DXYN) の実装。
"""
from chip8_tracer.core.snapshot import Operation
from chip8_tracer.core.state import REGISTER_VF
from chip8_tracer.instructions.base import (
    ExecutionContext, field_x, field_y, field_n, reg, make_operation,
)

# --- CLS (00E0) ---
def decode_cls(opcode: int) -> Operation:
    return make_operation(opcode, "00E0", "CLS", [])

def execute_cls(ctx: ExecutionContext, op: Operation) -> None:
    ctx.display.clear()

# --- DRW Vx, Vy, nibble (DXYN) ---
def decode_drw(opcode: int) -> Operation:
    return make_operation(opcode, "DXYN", "DRW", [reg(field_x(opcode)), reg(field_y(opcode)), str(field_n(opcode))])

# @intent:responsibility I から N バイトのスプライトを読み出し、(Vx, Vy) にXOR描画します。
# @intent:post-condition 1→0 に反転したピクセルがあればVF=1、無ければVF=0。
def execute_drw(ctx: ExecutionContext, op: Operation) -> None:
    state = ctx.state
    x = state.v[field_x(op.opcode)]
    y = state.v[field_y(op.opcode)]
    rows = [ctx.bus.read(state.i + row) for row in range(field_n(op.opcode))]
    collision = ctx.display.draw_sprite(x, y, rows)
    state.v[REGISTER_VF] = 1 if collision else 0
