"""
Typed Exception Hierarchy for the Allocation Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (wallets, agents, admin consoles) must react to a
failed operation precisely. Every failure therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA (resource ids, amounts, actors) as attributes

Example:
    try:
        ledger.submit_request(caller, resource_type_id=1, amount=60)
    except ResourceLimitExceededError as e:
        api_response(code=e.code, maximum=e.max_allocation)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    AllocationKernelError (base)
    |
    +-- AccessError
    |   +-- UnauthorizedAccessError
    |   |   +-- InvalidRequestTransitionError
    |   +-- InvalidTransferDestinationError
    |
    +-- AmountError
    |   +-- InvalidResourceAmountError
    |   +-- InsufficientResourceBalanceError
    |   +-- ResourceLimitExceededError
    |
    +-- ResourceError
    |   +-- ResourceTypeNotFoundError
    |   +-- ResourceLockedError
    |   +-- InvalidPriorityLevelError
    |   +-- InvalidResourceNameError
    |
    +-- RequestError
    |   +-- RequestNotFoundError
    |   +-- ExpiredRequestError
    |   +-- InvalidRequestPurposeError
    |
    +-- SystemStateError
    |   +-- AlreadyInitializedError
    |   +-- SystemNotInitializedError
    |
    +-- InvalidParameterError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                          | When Raised
------------------------------|-----------------------------------------------
UNAUTHORIZED_ACCESS           | Not administrator, system paused/maintenance,
                              | actor blacklisted, tier below priority floor,
                              | decision on a non-PENDING request
INVALID_RESOURCE_AMOUNT       | Zero amount, above global cap, below minimum
INSUFFICIENT_RESOURCE_BALANCE | Amount above pool availability or balance
RESOURCE_TYPE_NOT_FOUND       | Unknown resource type id
ALREADY_INITIALIZED           | Second initialize()
INVALID_TRANSFER_DESTINATION  | Recipient ineligible or equal to sender
RESOURCE_LIMIT_EXCEEDED       | Amount above resource max_allocation
INVALID_PRIORITY_LEVEL        | Priority floor outside 1..5
RESOURCE_LOCKED               | Resource type locked
EXPIRED_REQUEST               | Decision on a request past its expiry
REQUEST_NOT_FOUND             | Unknown request id
SYSTEM_NOT_INITIALIZED        | Any operation before initialize()
INVALID_RESOURCE_NAME         | Empty or over-long resource name
INVALID_REQUEST_PURPOSE       | Over-long purpose text
INVALID_PARAMETER             | Empty emergency contact, resource type id
                              | outside the storable integer range

===============================================================================
PROPAGATION
===============================================================================

Services raise; AllocationLedgerService rolls the transaction back, logs
``<operation>_failed`` with the code, and re-raises. There is no local
recovery or retry inside the kernel.
"""


class AllocationKernelError(Exception):
    """
    Base exception for all allocation kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ALLOCATION_KERNEL_ERROR"


# Access-related exceptions


class AccessError(AllocationKernelError):
    """Base exception for access and eligibility errors."""

    code: str = "ACCESS_ERROR"


class UnauthorizedAccessError(AccessError):
    """Caller may not perform the operation in the current state."""

    code: str = "UNAUTHORIZED_ACCESS"

    def __init__(self, actor: str, reason: str):
        self.actor = actor
        self.reason = reason
        super().__init__(f"Unauthorized access by {actor}: {reason}")


class InvalidRequestTransitionError(UnauthorizedAccessError):
    """
    Status transition not allowed by the request lifecycle.

    Surfaces as UNAUTHORIZED_ACCESS: deciding on a request that is no
    longer PENDING is an authorization failure for the caller.
    """

    def __init__(self, actor: str, request_id: int, from_status: str, to_status: str):
        self.request_id = request_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            actor,
            f"request {request_id} cannot move from {from_status} to {to_status}",
        )


class InvalidTransferDestinationError(AccessError):
    """Transfer recipient cannot receive allocated units."""

    code: str = "INVALID_TRANSFER_DESTINATION"

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Invalid transfer destination {recipient}: {reason}")


# Amount-related exceptions


class AmountError(AllocationKernelError):
    """Base exception for amount validation errors."""

    code: str = "AMOUNT_ERROR"


class InvalidResourceAmountError(AmountError):
    """Amount is zero, negative, above the global cap, or below a minimum."""

    code: str = "INVALID_RESOURCE_AMOUNT"

    def __init__(self, amount: int, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InsufficientResourceBalanceError(AmountError):
    """Requested amount exceeds what the pool or balance holds."""

    code: str = "INSUFFICIENT_RESOURCE_BALANCE"

    def __init__(self, requested: int, available: int, holder: str):
        self.requested = requested
        self.available = available
        self.holder = holder
        super().__init__(
            f"Insufficient balance in {holder}: requested {requested}, "
            f"available {available}"
        )


class ResourceLimitExceededError(AmountError):
    """Amount exceeds the resource type's max_allocation."""

    code: str = "RESOURCE_LIMIT_EXCEEDED"

    def __init__(self, resource_type_id: int, amount: int, max_allocation: int):
        self.resource_type_id = resource_type_id
        self.amount = amount
        self.max_allocation = max_allocation
        super().__init__(
            f"Amount {amount} exceeds max allocation {max_allocation} "
            f"for resource type {resource_type_id}"
        )


# Resource-related exceptions


class ResourceError(AllocationKernelError):
    """Base exception for resource pool errors."""

    code: str = "RESOURCE_ERROR"


class ResourceTypeNotFoundError(ResourceError):
    """Resource type with given id was not registered."""

    code: str = "RESOURCE_TYPE_NOT_FOUND"

    def __init__(self, resource_type_id: int):
        self.resource_type_id = resource_type_id
        super().__init__(f"Resource type not found: {resource_type_id}")


class ResourceLockedError(ResourceError):
    """Resource type is locked against submission and transfer."""

    code: str = "RESOURCE_LOCKED"

    def __init__(self, resource_type_id: int):
        self.resource_type_id = resource_type_id
        super().__init__(f"Resource type {resource_type_id} is locked")


class InvalidPriorityLevelError(ResourceError):
    """Priority floor outside the 1..5 tier range."""

    code: str = "INVALID_PRIORITY_LEVEL"

    def __init__(self, priority: int):
        self.priority = priority
        super().__init__(f"Invalid priority level {priority}: must be 1..5")


class InvalidResourceNameError(ResourceError):
    """Resource name is empty or longer than allowed."""

    code: str = "INVALID_RESOURCE_NAME"

    def __init__(self, name: str, max_length: int):
        self.name = name
        self.max_length = max_length
        super().__init__(
            f"Invalid resource name {name!r}: must be 1..{max_length} characters"
        )


# Request-related exceptions


class RequestError(AllocationKernelError):
    """Base exception for allocation request errors."""

    code: str = "REQUEST_ERROR"


class RequestNotFoundError(RequestError):
    """Allocation request with given id does not exist."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Allocation request not found: {request_id}")


class ExpiredRequestError(RequestError):
    """Request passed its expiration height before a decision was made."""

    code: str = "EXPIRED_REQUEST"

    def __init__(self, request_id: int, expires_at: int, now: int):
        self.request_id = request_id
        self.expires_at = expires_at
        self.now = now
        super().__init__(
            f"Allocation request {request_id} expired at {expires_at} (now {now})"
        )


class InvalidRequestPurposeError(RequestError):
    """Purpose text longer than allowed."""

    code: str = "INVALID_REQUEST_PURPOSE"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Request purpose too long: {length} characters (max {max_length})"
        )


# System state exceptions


class SystemStateError(AllocationKernelError):
    """Base exception for control-plane state errors."""

    code: str = "SYSTEM_STATE_ERROR"


class AlreadyInitializedError(SystemStateError):
    """System was already initialized."""

    code: str = "ALREADY_INITIALIZED"

    def __init__(self, initialized_at: int | None = None):
        self.initialized_at = initialized_at
        super().__init__(f"System already initialized at height {initialized_at}")


class SystemNotInitializedError(SystemStateError):
    """Operation attempted before initialize()."""

    code: str = "SYSTEM_NOT_INITIALIZED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"System not initialized; cannot {operation}")


# Argument exceptions


class InvalidParameterError(AllocationKernelError):
    """An operation argument is malformed (empty, or not storable)."""

    code: str = "INVALID_PARAMETER"

    def __init__(self, parameter: str, value: object, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {parameter} {value!r}: {reason}")
