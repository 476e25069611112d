from __future__ import annotations
import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, check_seed_policy, load_settings
from errors import (
    IncorrectSolution,
    RateLimited,
    RewardsError,
    StartupFailure,
    ValidationError,
    WalletError,
)
from models import (
    BalanceOut,
    DonateCheckOut,
    DonateIn,
    DonateOut,
    HealthOut,
    PuzzleOut,
    ReceiveIn,
    ReceiveOut,
    SolveIn,
    SolveOut,
)
from puzzle_store import PuzzleStore
from rate_limiter import RateLimiter
from rewards import RewardIssuer, qr_data_url
from solution import expected_user_moves, validate
from wallet import WalletManager


def get_client_ip(req: Request) -> str:
    # NOTE: If behind a reverse proxy, DO NOT trust X-Forwarded-For unless you control it.
    return req.client.host if req.client else "unknown"


def build_wallet(settings: Settings) -> WalletManager:
    # imported here so the app (and its tests) can run against any WalletManager
    from cashu_wallet import CashuWalletManager

    return CashuWalletManager(db_path=settings.wallet_db, seed_phrase=settings.wallet_seed)


async def wallet_call(awaitable):
    """Await a wallet operation, turning unexpected collaborator errors into WalletError."""
    try:
        return await awaitable
    except RewardsError:
        raise
    except Exception as e:
        raise WalletError(str(e) or type(e).__name__) from e


async def init_wallet(wallet: WalletManager, settings: Settings) -> None:
    print(f"[startup] initializing wallet with {settings.active_mode} mint: {settings.active_mint}")
    try:
        await wallet.init()
        # add_mint() is idempotent, so both mints are registered on every start
        for mint in settings.mints:
            await wallet.add_mint(mint)
    except WalletError as e:
        raise StartupFailure(f"wallet initialization failed: {e.message}") from e
    print("[startup] wallet initialized")


def create_app(
    settings: Optional[Settings] = None,
    wallet: Optional[WalletManager] = None,
    puzzles: Optional[PuzzleStore] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    settings = settings or load_settings()
    limiter = limiter or RateLimiter(settings.rate_limit_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Anything raised here aborts startup: no puzzles or no wallet, no service.
        check_seed_policy(settings)
        if app.state.puzzles is None:
            app.state.puzzles = PuzzleStore.load(settings.puzzles_path)
        if app.state.wallet is None:
            app.state.wallet = build_wallet(settings)
        await init_wallet(app.state.wallet, settings)
        app.state.issuer = RewardIssuer(app.state.wallet, settings.active_mint)

        sweeper = asyncio.create_task(limiter.run_sweeper(settings.rate_limit_sweep_sec))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            await app.state.wallet.close()
            print("[shutdown] stopped")

    app = FastAPI(title="Chess Puzzle Rewards", lifespan=lifespan)
    app.state.settings = settings
    app.state.limiter = limiter
    app.state.puzzles = puzzles
    app.state.wallet = wallet
    app.state.issuer = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RewardsError)
    async def _rewards_error(req: Request, exc: RewardsError):
        headers = None
        if isinstance(exc, RateLimited):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(req: Request, exc: RequestValidationError):
        fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) or "body" for e in exc.errors()})
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": f"Invalid request: check {', '.join(fields)}"},
        )

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception):
        print(f"[error] {req.method} {req.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=WalletError.status_code, content={"error": str(exc) or "internal error"})

    app.include_router(create_rewards_router(settings, limiter))
    # the original frontend calls everything under /api
    app.include_router(create_rewards_router(settings, limiter), prefix="/api", include_in_schema=False)
    return app


def create_rewards_router(settings: Settings, limiter: RateLimiter) -> APIRouter:
    router = APIRouter()

    def wallet_of(req: Request) -> WalletManager:
        return req.app.state.wallet

    async def active_balance(req: Request) -> int:
        return await req.app.state.issuer.balance()

    @router.get("/health", response_model=HealthOut)
    def health():
        return HealthOut(
            status="ok",
            message="Chess Puzzle Rewards Server",
            mode=settings.active_mode,
            mint=settings.active_mint,
        )

    @router.get("/puzzle", response_model=PuzzleOut)
    def get_puzzle(req: Request):
        puzzle = req.app.state.puzzles.get_random()
        d = puzzle.to_dict()
        return PuzzleOut(fen=d["position"], solution=d["solutionMoves"], **d)

    @router.post("/puzzle/solve", response_model=SolveOut)
    async def solve_puzzle(data: SolveIn, req: Request):
        # Every attempt counts against the cooldown, right or wrong.
        check = limiter.check_and_record(get_client_ip(req))
        if not check.allowed:
            secs = check.retry_after_seconds
            raise RateLimited(
                f"Slow down! You can only solve 1 puzzle every {settings.rate_limit_seconds} seconds. "
                f"Try again in {secs} second{'s' if secs > 1 else ''}.",
                retry_after_seconds=secs,
            )

        puzzle = req.app.state.puzzles.get_by_id(data.puzzleId)
        if puzzle is None:
            raise ValidationError("Puzzle not found. Please try a new puzzle.")

        if not validate(puzzle, data.moves):
            print(f"[solve] mismatch on {puzzle.id}: submitted={data.moves} expected={expected_user_moves(puzzle)}")
            raise IncorrectSolution("Incorrect solution. Try again!")

        reward = await req.app.state.issuer.issue(settings.puzzle_reward)
        return SolveOut(
            success=True,
            reward=reward.amount,
            encodedToken=reward.encoded_token,
            renderable=reward.renderable,
            remainingBalance=reward.remaining_balance,
        )

    @router.get("/balance", response_model=BalanceOut)
    async def get_balance(req: Request):
        balances = await wallet_call(wallet_of(req).get_balances())
        return BalanceOut(
            total=int(balances.get(settings.active_mint, 0)),
            perMintBalances={k: int(v) for k, v in balances.items()},
            activeMode=settings.active_mode,
            activeMint=settings.active_mint,
        )

    @router.post("/donate", response_model=DonateOut)
    async def donate(data: DonateIn, req: Request):
        quote = await wallet_call(wallet_of(req).create_mint_quote(settings.active_mint, data.amount))
        return DonateOut(
            quoteId=quote.quote,
            amount=data.amount,
            paymentRequest=quote.request,
            renderable=qr_data_url(quote.request),
            mint=settings.active_mint,
        )

    @router.get("/donate/check/{quote_id}", response_model=DonateCheckOut, response_model_exclude_none=True)
    async def donate_check(quote_id: str, req: Request):
        try:
            await wallet_of(req).redeem_mint_quote(settings.active_mint, quote_id)
        except Exception as e:
            # most likely the invoice simply hasn't been paid yet
            return DonateCheckOut(paid=False, error=e.message if isinstance(e, WalletError) else str(e))
        return DonateCheckOut(paid=True, balance=await active_balance(req))

    @router.post("/receive", response_model=ReceiveOut)
    async def receive_token(data: ReceiveIn, req: Request):
        token = data.token.strip()
        if not token:
            raise ValidationError("Token is required")
        await wallet_call(wallet_of(req).receive(token))
        return ReceiveOut(
            success=True,
            balance=await active_balance(req),
            message="Tokens received successfully",
        )

    return router


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
