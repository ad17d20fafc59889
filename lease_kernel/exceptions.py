"""
Typed Exception Hierarchy for the Lease Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The interface boundary maps every failure to a structured response with an
HTTP status code.  It does that by exception TYPE and the ``code`` class
attribute, never by parsing message text.

Every exception:
  1. Has a typed class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (bill_id, slip_id, ...)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LeaseKernelError:

    LeaseKernelError (base)
    |
    +-- ValidationError
    |
    +-- AuthError
    |   +-- UnauthenticatedError
    |   +-- ForbiddenError
    |       +-- AdminRequiredError
    |       +-- NotBillTenantError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- BillNotFoundError
    |   +-- PaymentSlipNotFoundError
    |   +-- TenantLinkMissingError
    |   +-- SlipFileMissingError
    |
    +-- ConflictError
    |   +-- JobAlreadyRunningError
    |   +-- BillHasSlipsError
    |
    +-- ExternalServiceError
        +-- SlipStorageError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | HTTP | When Raised
----------------|-----------------------------|------|---------------------------------
Validation      | VALIDATION_ERROR            | 400  | Missing or malformed input
----------------|-----------------------------|------|---------------------------------
Auth            | UNAUTHENTICATED             | 401  | Missing/invalid credential
                | FORBIDDEN                   | 403  | Identity mismatch
                | ADMIN_REQUIRED              | 403  | Admin operation, non-admin caller
                | NOT_BILL_TENANT             | 403  | Tenant acting on another's bill
----------------|-----------------------------|------|---------------------------------
Not found       | CONTRACT_NOT_FOUND          | 404  | Contract ID doesn't exist
                | BILL_NOT_FOUND              | 404  | Bill ID doesn't exist
                | PAYMENT_SLIP_NOT_FOUND      | 404  | Slip ID doesn't exist
                | TENANT_LINK_MISSING         | 404  | Bill has no contract/tenant
                | SLIP_FILE_MISSING           | 404  | Slip row exists, file does not
----------------|-----------------------------|------|---------------------------------
Conflict        | CONFLICT                    | 409  | Unexpected state (unused by
                |                             |      | decisions, which are lenient)
                | JOB_ALREADY_RUNNING         | 409  | Overlapping daily job run
                | BILL_HAS_SLIPS              | 409  | Deleting a bill with evidence
----------------|-----------------------------|------|---------------------------------
External        | EXTERNAL_SERVICE_ERROR      | 500  | Store call failure
                | SLIP_STORAGE_ERROR          | 500  | Slip file could not be stored

===============================================================================
"""


class LeaseKernelError(Exception):
    """
    Base exception for all lease kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEASE_KERNEL_ERROR"


class ValidationError(LeaseKernelError):
    """Missing or malformed input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


# Auth exceptions


class AuthError(LeaseKernelError):
    """Base exception for credential and identity errors."""

    code: str = "AUTH_ERROR"


class UnauthenticatedError(AuthError):
    """No credential was presented, or it could not be verified."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, reason: str = "missing or invalid credential"):
        self.reason = reason
        super().__init__(f"Unauthenticated: {reason}")


class ForbiddenError(AuthError):
    """The verified identity may not perform this operation."""

    code: str = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class AdminRequiredError(ForbiddenError):
    """An admin-only operation was invoked without an admin credential."""

    code: str = "ADMIN_REQUIRED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Operation '{operation}' requires an admin credential")


class NotBillTenantError(ForbiddenError):
    """The caller is not the tenant on the bill's contract."""

    code: str = "NOT_BILL_TENANT"

    def __init__(self, bill_id: str, subject_id: str | None):
        self.bill_id = bill_id
        self.subject_id = subject_id
        super().__init__(
            f"Subject {subject_id} is not the tenant of bill {bill_id}"
        )


# Not-found exceptions


class NotFoundError(LeaseKernelError):
    """Base exception for missing resources."""

    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    """Contract with given ID was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class BillNotFoundError(NotFoundError):
    """Bill with given ID was not found."""

    code: str = "BILL_NOT_FOUND"

    def __init__(self, bill_id: str):
        self.bill_id = bill_id
        super().__init__(f"Bill not found: {bill_id}")


class PaymentSlipNotFoundError(NotFoundError):
    """Payment slip with given ID was not found."""

    code: str = "PAYMENT_SLIP_NOT_FOUND"

    def __init__(self, slip_id: str):
        self.slip_id = slip_id
        super().__init__(f"Payment slip not found: {slip_id}")


class TenantLinkMissingError(NotFoundError):
    """The bill's contract (and therefore its tenant) could not be resolved."""

    code: str = "TENANT_LINK_MISSING"

    def __init__(self, bill_id: str, contract_id: str | None = None):
        self.bill_id = bill_id
        self.contract_id = contract_id
        super().__init__(
            f"Bill {bill_id} has no resolvable tenant (contract {contract_id})"
        )


class SlipFileMissingError(NotFoundError):
    """A slip row references a file that storage no longer has."""

    code: str = "SLIP_FILE_MISSING"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Slip file not found: {reference}")


# Conflict exceptions


class ConflictError(LeaseKernelError):
    """Operation on a resource in an unexpected state."""

    code: str = "CONFLICT"


class JobAlreadyRunningError(ConflictError):
    """Another run of the same job currently holds the run lock."""

    code: str = "JOB_ALREADY_RUNNING"

    def __init__(self, job_name: str, holder_run_id: str | None = None):
        self.job_name = job_name
        self.holder_run_id = holder_run_id
        super().__init__(
            f"Job '{job_name}' is already running (run {holder_run_id})"
        )


class BillHasSlipsError(ConflictError):
    """The bill still has payment slips attached and cannot be deleted."""

    code: str = "BILL_HAS_SLIPS"

    def __init__(self, bill_id: str, slip_count: int):
        self.bill_id = bill_id
        self.slip_count = slip_count
        super().__init__(
            f"Bill {bill_id} has {slip_count} payment slip(s); delete refused"
        )


# External service exceptions


class ExternalServiceError(LeaseKernelError):
    """A store or storage call failed."""

    code: str = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} failed: {detail}")


class SlipStorageError(ExternalServiceError):
    """Slip storage failed to write, read or remove a file."""

    code: str = "SLIP_STORAGE_ERROR"

    def __init__(self, file_name: str, detail: str):
        self.file_name = file_name
        super().__init__("slip_storage", f"{file_name}: {detail}")
