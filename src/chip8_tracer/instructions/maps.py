# chip8_tracer/instructions/maps.py
"""
オペコードと命令実装のマッピング定義。
"""
from . import alu
from . import control
from . import display
from . import keyinput
from . import load

# @intent:map サブディスパッチを行うファミリと、セレクタを取り出すマスク。
# 0x0/0xE/0xF は下位バイト、0x8 は下位ニブルで命令を選択します。
SELECTOR_MASKS = {
    0x0: 0x00FF,
    0x8: 0x000F,
    0xE: 0x00FF,
    0xF: 0x00FF,
}

# @intent:map (ファミリ, セレクタ) からデコード関数へのマッピングテーブル。
# サブディスパッチを行わないファミリのセレクタは None です。
DECODE_MAP = {
    # Control
    (0x0, 0xEE): control.decode_ret,
    (0x1, None): control.decode_jp,
    (0x2, None): control.decode_call,
    (0x3, None): control.decode_se_byte,
    (0x4, None): control.decode_sne_byte,
    (0x5, None): control.decode_se_reg,
    (0x9, None): control.decode_sne_reg,
    (0xB, None): control.decode_jp_v0,

    # Load/Store
    (0x6, None): load.decode_ld_byte,
    (0xA, None): load.decode_ld_i,
    (0xC, None): load.decode_rnd,
    (0xF, 0x07): load.decode_ld_vx_dt,
    (0xF, 0x15): load.decode_ld_dt,
    (0xF, 0x18): load.decode_ld_st,
    (0xF, 0x1E): load.decode_add_i,
    (0xF, 0x29): load.decode_ld_f,
    (0xF, 0x33): load.decode_ld_b,
    (0xF, 0x55): load.decode_store_regs,
    (0xF, 0x65): load.decode_load_regs,

    # ALU
    (0x7, None): alu.decode_add_byte,
    (0x8, 0x0): alu.decode_ld_reg,
    (0x8, 0x1): alu.decode_or,
    (0x8, 0x2): alu.decode_and,
    (0x8, 0x3): alu.decode_xor,
    (0x8, 0x4): alu.decode_add_reg,
    (0x8, 0x5): alu.decode_sub,
    (0x8, 0x6): alu.decode_shr,
    (0x8, 0x7): alu.decode_subn,
    (0x8, 0xE): alu.decode_shl,

    # Display
    (0x0, 0xE0): display.decode_cls,
    (0xD, None): display.decode_drw,

    # Key input
    (0xE, 0x9E): keyinput.decode_skp,
    (0xE, 0xA1): keyinput.decode_sknp,
    (0xF, 0x0A): keyinput.decode_wait_key,
}

# @intent:map 命令パターンから実行関数へのマッピングテーブル。
EXECUTE_MAP = {
    # Control
    "00EE": control.execute_ret,
    "1NNN": control.execute_jp,
    "2NNN": control.execute_call,
    "3XNN": control.execute_se_byte,
    "4XNN": control.execute_sne_byte,
    "5XY0": control.execute_se_reg,
    "9XY0": control.execute_sne_reg,
    "BNNN": control.execute_jp_v0,

    # Load/Store
    "6XNN": load.execute_ld_byte,
    "ANNN": load.execute_ld_i,
    "CXNN": load.execute_rnd,
    "FX07": load.execute_ld_vx_dt,
    "FX15": load.execute_ld_dt,
    "FX18": load.execute_ld_st,
    "FX1E": load.execute_add_i,
    "FX29": load.execute_ld_f,
    "FX33": load.execute_ld_b,
    "FX55": load.execute_store_regs,
    "FX65": load.execute_load_regs,

    # ALU
    "7XNN": alu.execute_add_byte,
    "8XY0": alu.execute_ld_reg,
    "8XY1": alu.execute_or,
    "8XY2": alu.execute_and,
    "8XY3": alu.execute_xor,
    "8XY4": alu.execute_add_reg,
    "8XY5": alu.execute_sub,
    "8XY6": alu.execute_shr,
    "8XY7": alu.execute_subn,
    "8XYE": alu.execute_shl,

    # Display
    "00E0": display.execute_cls,
    "DXYN": display.execute_drw,

    # Key input
    "EX9E": keyinput.execute_skp,
    "EXA1": keyinput.execute_sknp,
    "FX0A": keyinput.execute_wait_key,
}
