"""ID 生成器 -- ULID（时间有序，无需协调）"""

from ulid import ULID


class UlidGenerator:
    """默认 IdGenerator 实现"""

    def new_id(self) -> str:
        return str(ULID())
