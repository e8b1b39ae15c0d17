"""
재고 도메인 예외 계층

    InventoryError (base)
    |
    +-- InvalidRequestError          잘못된 입력 / 존재하지 않는 참조
    +-- NotFoundError                알 수 없는 id
    +-- InsufficientQuantityError    이동 수량 > 출고 창고 재고
    +-- NegativeQuantityError        음수 재고가 되는 set/adjust
    +-- ConflictError
        +-- DuplicateResourceError   이름/SKU/(창고, 품목) 중복
        +-- ResourceInUseError       재고·이동 기록이 참조 중인 삭제
        +-- ConcurrencyConflictError 동시 수정 충돌 (재시도 가능)

각 예외는 API 응답에 그대로 실을 수 있는 code 속성을 가진다.
HTTP 상태 코드 매핑은 api/errors.py 담당.
"""


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(InventoryError):
    code = "INVALID_REQUEST"


class NotFoundError(InventoryError):
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} #{resource_id}을(를) 찾을 수 없습니다")


class InsufficientQuantityError(InventoryError):
    code = "INSUFFICIENT_QUANTITY"

    def __init__(self, warehouse_id: int, item_id: int, requested: int, available: int):
        self.warehouse_id = warehouse_id
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"출고 창고 재고 부족: warehouse={warehouse_id}, item={item_id}, "
            f"요청={requested}, 가용={available}"
        )


class NegativeQuantityError(InventoryError):
    code = "NEGATIVE_QUANTITY"

    def __init__(self, stock_id: int | None, resulting_quantity: int):
        self.stock_id = stock_id
        self.resulting_quantity = resulting_quantity
        super().__init__(
            f"재고 수량은 음수가 될 수 없습니다 (stock={stock_id}, 결과={resulting_quantity})"
        )


class ConflictError(InventoryError):
    code = "CONFLICT"


class DuplicateResourceError(ConflictError):
    code = "DUPLICATE_RESOURCE"


class ResourceInUseError(ConflictError):
    code = "RESOURCE_IN_USE"


class ConcurrencyConflictError(ConflictError):
    code = "CONCURRENCY_CONFLICT"
