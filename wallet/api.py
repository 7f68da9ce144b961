from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import LedgerSettings
from .errors import (
    ConcurrencyConflict,
    CooldownActive,
    LedgerServiceError,
    NotFound,
    Unauthorized,
)
from .models import (
    Account,
    AdminActor,
    AdminRole,
    CompleteTaskPayload,
    CompleteWithdrawPayload,
    CreateDepositPayload,
    CreateWithdrawPayload,
    DepositRequest,
    DepositStatus,
    LedgerHistoryResponse,
    LevelOverview,
    OpenAccountPayload,
    Platform,
    PlatformTask,
    RejectPayload,
    RequestStats,
    TaskResult,
    WithdrawEligibility,
    WithdrawRequest,
    WithdrawStatus,
)
from .service import WalletService


def http_error(e: LedgerServiceError) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, Unauthorized):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, ConcurrencyConflict):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, CooldownActive):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": str(e),
                "next_available": e.next_available.isoformat() if e.next_available else None,
            },
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def get_admin(
    x_admin_id: Optional[UUID] = Header(default=None),
    x_admin_role: AdminRole = Header(default=AdminRole.ADMIN),
    x_admin_name: str = Header(default="admin"),
) -> AdminActor:
    """Admin identity from the X-Admin-* headers.

    The API does no authentication of its own: these headers must be set by a
    trusted gateway that has already authenticated the admin and strips any
    client-supplied values. Exposed directly, any caller could claim any role.
    """
    if x_admin_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin identity required")
    return AdminActor(id=x_admin_id, role=x_admin_role, username=x_admin_name)


def create_app(service: Optional[WalletService] = None) -> FastAPI:
    wallet = service or WalletService(settings=LedgerSettings.from_env())

    app = FastAPI(
        title="Task Rewards Wallet API",
        description="Balance and commission ledger with deposit and withdraw approval workflows",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "wallet-ledger"}

    @app.post("/accounts", response_model=Account, status_code=status.HTTP_201_CREATED, tags=["Accounts"])
    def open_account(request: OpenAccountPayload) -> Account:
        try:
            return wallet.open_account(request.username, request.level)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}", response_model=Account, tags=["Accounts"])
    def get_account(account_id: UUID) -> Account:
        try:
            return wallet.get_account(account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/ledger", response_model=LedgerHistoryResponse, tags=["Accounts"])
    def get_ledger(account_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        try:
            return wallet.get_ledger_history(account_id, limit, offset)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/levels", response_model=LevelOverview, tags=["Accounts"])
    def get_levels(account_id: UUID) -> LevelOverview:
        try:
            return wallet.level_info(account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    # Deposits

    @app.post(
        "/accounts/{account_id}/deposits",
        response_model=DepositRequest,
        status_code=status.HTTP_201_CREATED,
        tags=["Deposits"],
    )
    def create_deposit(account_id: UUID, request: CreateDepositPayload) -> DepositRequest:
        try:
            return wallet.deposits.create(account_id, request.amount, request.payment_method)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/deposits", response_model=list[DepositRequest], tags=["Deposits"])
    def list_deposits(
        account_id: UUID, status: Optional[DepositStatus] = None, limit: int = 20, offset: int = 0
    ) -> list[DepositRequest]:
        try:
            return wallet.list_deposits(account_id, status, limit, offset)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/deposits/stats", response_model=RequestStats, tags=["Deposits"])
    def deposit_stats(account_id: UUID) -> RequestStats:
        try:
            return wallet.deposit_stats(account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/accounts/{account_id}/deposits/{deposit_id}/cancel", response_model=DepositRequest, tags=["Deposits"])
    def cancel_deposit(account_id: UUID, deposit_id: UUID) -> DepositRequest:
        try:
            return wallet.deposits.cancel(deposit_id, account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post(
        "/accounts/{account_id}/deposits/{deposit_id}/confirm-payment",
        response_model=DepositRequest,
        tags=["Deposits"],
    )
    def confirm_deposit_payment(account_id: UUID, deposit_id: UUID) -> DepositRequest:
        try:
            return wallet.deposits.confirm_payment(deposit_id, account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/admin/deposits/{deposit_id}/approve", response_model=DepositRequest, tags=["Admin"])
    def approve_deposit(deposit_id: UUID, admin: AdminActor = Depends(get_admin)) -> DepositRequest:
        try:
            return wallet.deposits.approve(deposit_id, admin)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/admin/deposits/{deposit_id}/reject", response_model=DepositRequest, tags=["Admin"])
    def reject_deposit(
        deposit_id: UUID, request: RejectPayload, admin: AdminActor = Depends(get_admin)
    ) -> DepositRequest:
        try:
            return wallet.deposits.reject(deposit_id, admin, request.reason)
        except LedgerServiceError as e:
            raise http_error(e)

    # Withdraws

    @app.get("/accounts/{account_id}/withdraws/eligibility", response_model=WithdrawEligibility, tags=["Withdraws"])
    def withdraw_eligibility(account_id: UUID) -> WithdrawEligibility:
        try:
            return wallet.check_withdraw_eligibility(account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post(
        "/accounts/{account_id}/withdraws",
        response_model=WithdrawRequest,
        status_code=status.HTTP_201_CREATED,
        tags=["Withdraws"],
    )
    def create_withdraw(account_id: UUID, request: CreateWithdrawPayload) -> WithdrawRequest:
        try:
            return wallet.withdraws.create(account_id, request.amount, request.bank)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/withdraws", response_model=list[WithdrawRequest], tags=["Withdraws"])
    def list_withdraws(
        account_id: UUID, status: Optional[WithdrawStatus] = None, limit: int = 20, offset: int = 0
    ) -> list[WithdrawRequest]:
        try:
            return wallet.list_withdraws(account_id, status, limit, offset)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.get("/accounts/{account_id}/withdraws/stats", response_model=RequestStats, tags=["Withdraws"])
    def withdraw_stats(account_id: UUID) -> RequestStats:
        try:
            return wallet.withdraw_stats(account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/accounts/{account_id}/withdraws/{withdraw_id}/cancel", response_model=WithdrawRequest, tags=["Withdraws"])
    def cancel_withdraw(account_id: UUID, withdraw_id: UUID) -> WithdrawRequest:
        try:
            return wallet.withdraws.cancel(withdraw_id, account_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/admin/withdraws/{withdraw_id}/approve", response_model=WithdrawRequest, tags=["Admin"])
    def approve_withdraw(withdraw_id: UUID, admin: AdminActor = Depends(get_admin)) -> WithdrawRequest:
        try:
            return wallet.withdraws.approve(withdraw_id, admin)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/admin/withdraws/{withdraw_id}/complete", response_model=WithdrawRequest, tags=["Admin"])
    def complete_withdraw(
        withdraw_id: UUID, request: CompleteWithdrawPayload, admin: AdminActor = Depends(get_admin)
    ) -> WithdrawRequest:
        try:
            return wallet.withdraws.complete(withdraw_id, admin, request.external_txn_id)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/admin/withdraws/{withdraw_id}/reject", response_model=WithdrawRequest, tags=["Admin"])
    def reject_withdraw(
        withdraw_id: UUID, request: RejectPayload, admin: AdminActor = Depends(get_admin)
    ) -> WithdrawRequest:
        try:
            return wallet.withdraws.reject(withdraw_id, admin, request.reason)
        except LedgerServiceError as e:
            raise http_error(e)

    # Tasks

    @app.get("/accounts/{account_id}/platforms/{platform}/tasks", response_model=list[PlatformTask], tags=["Tasks"])
    def platform_tasks(account_id: UUID, platform: Platform) -> list[PlatformTask]:
        try:
            return wallet.tasks.platform_tasks(account_id, platform)
        except LedgerServiceError as e:
            raise http_error(e)

    @app.post("/accounts/{account_id}/tasks", response_model=TaskResult, tags=["Tasks"])
    def complete_task(account_id: UUID, request: CompleteTaskPayload) -> TaskResult:
        try:
            return wallet.tasks.complete_task(account_id, request.platform, request.level)
        except LedgerServiceError as e:
            raise http_error(e)

    app.state.wallet = wallet
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from .logging import setup_logging

    setup_logging("api")
    uvicorn.run(app, host="0.0.0.0", port=8000)
