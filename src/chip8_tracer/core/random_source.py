# chip8_tracer/core/random_source.py
"""
乱数源の抽象化。

CXNN 命令が消費する一様乱数バイトを外部から注入できるようにします。
テストでは SequenceRandomSource で決定的な値を与えます。
"""
import random
from abc import ABC, abstractmethod
from itertools import cycle
from typing import Iterable, Optional


# @intent:responsibility 8bitの乱数を1つずつ供給するインターフェースを定義します。
class RandomSource(ABC):
    @abstractmethod
    def next_byte(self) -> int:
        """
        0..255 の一様乱数を1つ返します。
        """
        pass


# @intent:responsibility 標準ライブラリの random.Random を用いた乱数源。seed指定で再現可能になります。
class SystemRandomSource(RandomSource):
    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def next_byte(self) -> int:
        return self._rng.randrange(256)


# @intent:responsibility 固定のバイト列を循環して返す乱数源。
class SequenceRandomSource(RandomSource):
    def __init__(self, values: Iterable[int]):
        values = list(values)
        if not values:
            raise ValueError("SequenceRandomSource requires at least one value.")
        for value in values:
            if not 0 <= value <= 0xFF:
                raise ValueError(f"Value {value} is not an 8-bit value.")
        self._values = cycle(values)

    def next_byte(self) -> int:
        return next(self._values)
