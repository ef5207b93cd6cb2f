# chip8_tracer/core/display.py
"""
Core Layer (フレームバッファ)

64x32ドットのモノクロ表示バッファを保持します。1ピクセル1バイト (0 または 1) で、
クリア命令とスプライト描画命令によってのみ変更されます。
表示デバイスへの出力はホスト側の責務です。
"""
from typing import Iterable, Tuple

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8

# @intent:responsibility 表示バッファの状態と、XOR描画・クリアの操作を提供します。
class FrameBuffer:
    """
    行優先 (row-major) の1バイト/ピクセルのフレームバッファ。
    """
    def __init__(self, width: int = SCREEN_WIDTH, height: int = SCREEN_HEIGHT):
        if width <= 0 or height <= 0:
            raise ValueError("Frame buffer dimensions must be positive.")
        self._width = width
        self._height = height
        self._cells = bytearray(width * height)
        self._dirty = False

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    # 前回 consume_dirty() 以降に内容が変更されたかどうか。
    @property
    def dirty(self) -> bool:
        return self._dirty

    # @intent:responsibility 変更フラグを返し、同時にリセットします。ホストの再描画判定用。
    def consume_dirty(self) -> bool:
        dirty = self._dirty
        self._dirty = False
        return dirty

    # @intent:responsibility 全ピクセルを0にします。
    def clear(self) -> None:
        self._cells[:] = bytes(len(self._cells))
        self._dirty = True

    # @intent:responsibility 8ドット幅のスプライトをXOR描画し、衝突（1→0）の有無を返します。
    # @intent:pre-condition rowsの各要素は8bit値である必要があります。
    def draw_sprite(self, x: int, y: int, rows: Iterable[int]) -> bool:
        """
        rows の各バイトを1行として、(x, y) を左上にXOR描画します。
        座標は両軸とも画面サイズで折り返されます。
        """
        collision = False
        for row, bits in enumerate(rows):
            py = (y + row) % self._height
            for col in range(SPRITE_WIDTH):
                if not bits & (0x80 >> col):
                    continue
                px = (x + col) % self._width
                index = py * self._width + px
                if self._cells[index]:
                    collision = True
                self._cells[index] ^= 1
        self._dirty = True
        return collision

    def get_pixel(self, x: int, y: int) -> int:
        return self._cells[(y % self._height) * self._width + (x % self._width)]

    # @intent:responsibility ホスト向けに全ピクセルの読み取り専用コピーを返します。
    def pixels(self) -> bytes:
        return bytes(self._cells)

    def rows(self) -> Tuple[bytes, ...]:
        w = self._width
        return tuple(bytes(self._cells[r * w:(r + 1) * w]) for r in range(self._height))

    # @intent:responsibility pixels() で得た内容を書き戻します（デバッガの巻き戻し用）。
    def restore(self, pixels: bytes) -> None:
        if len(pixels) != len(self._cells):
            raise ValueError(
                f"Pixel data size ({len(pixels)}) does not match the frame buffer ({len(self._cells)})."
            )
        self._cells[:] = pixels
        self._dirty = True

    # @intent:responsibility 診断出力用のテキスト表現を返します。
    def to_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join("".join(on if cell else off for cell in row) for row in self.rows())
