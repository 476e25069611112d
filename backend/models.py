# models.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# Input models
class SolveIn(BaseModel):
    puzzleId: str = Field(min_length=1)
    moves: List[str]


class DonateIn(BaseModel):
    amount: int = Field(ge=1)


class ReceiveIn(BaseModel):
    token: str = Field(min_length=1)


# Output models
class HealthOut(BaseModel):
    status: str
    message: str
    mode: str
    mint: str


class PuzzleOut(BaseModel):
    id: str
    position: str
    fen: str
    rating: int
    solutionMoves: List[str]
    solution: List[str]
    themes: List[str]


class SolveOut(BaseModel):
    success: bool
    reward: int
    encodedToken: str
    renderable: str
    remainingBalance: int


class BalanceOut(BaseModel):
    total: int
    perMintBalances: Dict[str, int]
    activeMode: str
    activeMint: str


class DonateOut(BaseModel):
    quoteId: str
    amount: int
    paymentRequest: str
    renderable: str
    mint: str


class DonateCheckOut(BaseModel):
    paid: bool
    balance: Optional[int] = None
    error: Optional[str] = None


class ReceiveOut(BaseModel):
    success: bool
    balance: int
    message: str
