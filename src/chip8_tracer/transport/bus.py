# chip8_tracer/transport/bus.py
"""
Transport Layer (メモリバス)

CHIP-8の4KBアドレス空間 (0x000-0xFFF) をデバイスに割り当て、
命令実行中のメモリアクセスをアクセスログとして記録します。
ログはスナップショット生成、ブレークポイント判定、ステップバックで使用されます。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from chip8_tracer.core.errors import MemoryOutOfBounds

# @intent:constant CHIP-8のメモリ空間サイズ (0x000-0xFFF)。
MEMORY_SIZE = 0x1000

# @intent:responsibility アクセスログの種別。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 命令が行った1バイト分のメモリアクセスを表します。
@dataclass(frozen=True)
class BusAccess:
    """
    書き込みの場合、previous_data に上書きされる直前の値を保持します。
    デバッガはこの値を書き戻してステップバックを行います。
    """
    address: int
    data: int
    access_type: BusAccessType
    previous_data: Optional[int] = None

# @intent:responsibility バスに割り当て可能な記憶デバイスのインターフェースです。
class Device(ABC):
    # address はデバイス先頭からのオフセット
    @abstractmethod
    def read(self, address: int) -> int:
        ...

    @abstractmethod
    def write(self, address: int, data: int) -> None:
        ...

    @abstractmethod
    def get_size(self) -> int:
        ...

    def clear(self) -> None:
        pass

# @intent:responsibility バイト単位で読み書きできる揮発メモリです。
class RAM(Device):
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._cells = bytearray(size)

    def _check_offset(self, address: int) -> None:
        if not 0 <= address < len(self._cells):
            raise MemoryOutOfBounds(address, f"Address {address} out of bounds for RAM of size {len(self._cells)}.")

    def read(self, address: int) -> int:
        self._check_offset(address)
        return self._cells[address]

    def write(self, address: int, data: int) -> None:
        self._check_offset(address)
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._cells[address] = data

    def clear(self) -> None:
        self._cells[:] = bytes(len(self._cells))

    def get_size(self) -> int:
        return len(self._cells)


class _Mapping(NamedTuple):
    start: int
    end: int
    device: Device

# @intent:responsibility アドレスからデバイスを引き、アクセスを委譲してログに残すメモリバスです。
class Bus:
    """
    CHIP-8のメモリバス。

    read() と write() はアクセスログに記録されます。peek() と load() は記録されず、
    逆アセンブラ、プログラムローダー、デバッガの書き戻しなど、
    命令実行の外側からのアクセスに使用します。
    """
    def __init__(self):
        self._mappings: List[_Mapping] = []
        self._activity: List[BusAccess] = []

    # @intent:responsibility [start_address, end_address] にデバイスを割り当てます。
    # @intent:pre-condition 範囲は非負で、デバイスのサイズと一致する必要があります。重複は検査しません。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        if not (0 <= start_address <= end_address):
            raise ValueError(f"Invalid address range: {start_address:#x}-{end_address:#x}.")
        if not isinstance(device, Device):
            raise TypeError(f"{type(device).__name__} is not a bus Device.")
        span = end_address - start_address + 1
        if device.get_size() != span:
            raise ValueError(
                f"{type(device).__name__} of {device.get_size()} bytes cannot be mapped to a range of {span} bytes."
            )
        self._mappings.append(_Mapping(start_address, end_address, device))

    # @intent:post-condition 割り当ての無いアドレスではMemoryOutOfBoundsを送出します。
    def _resolve(self, address: int) -> Tuple[Device, int]:
        for mapping in self._mappings:
            if mapping.start <= address <= mapping.end:
                return mapping.device, address - mapping.start
        raise MemoryOutOfBounds(address, f"Address {address:#06x} not mapped to any device.")

    def read(self, address: int) -> int:
        device, offset = self._resolve(address)
        data = device.read(offset)
        self._activity.append(BusAccess(address, data, BusAccessType.READ))
        return data

    def peek(self, address: int) -> int:
        device, offset = self._resolve(address)
        return device.read(offset)

    # @intent:responsibility 書き込みを行い、上書き前の値と共にログに記録します。
    def write(self, address: int, data: int) -> None:
        device, offset = self._resolve(address)
        previous = device.read(offset)
        device.write(offset, data)
        self._activity.append(BusAccess(address, data, BusAccessType.WRITE, previous_data=previous))

    def load(self, address: int, data: int) -> None:
        device, offset = self._resolve(address)
        device.write(offset, data)

    # @intent:responsibility 前回の呼び出し以降のアクセスログを返し、ログを空にします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        activity, self._activity = self._activity, []
        return activity

    # @intent:responsibility 全デバイスをゼロクリアし、ログも破棄します。
    def clear(self) -> None:
        for mapping in self._mappings:
            mapping.device.clear()
        self._activity = []

    # マップされた最大アドレス+1。何も割り当てられていなければ0。
    def get_address_limit(self) -> int:
        return max((mapping.end + 1 for mapping in self._mappings), default=0)


# @intent:responsibility 0x000-0xFFFに4KBのRAMを割り当てた標準構成のバスを生成します。
def create_memory_bus() -> Bus:
    bus = Bus()
    bus.register_device(0x000, MEMORY_SIZE - 1, RAM(MEMORY_SIZE))
    return bus
