"""
FastAPI application for the polyomino duel.

Framework: FastAPI (Python async web framework)

The app holds a single game session. It turns HTTP requests into
GameController commands and controller state into response schemas; all game
decisions stay in the engine.

Game routes are plain ``def`` handlers (run in the threadpool) and take the
controller lock, so an AI search running in the executor never blocks the
event loop or races a request.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agents.mobility_agent import MobilityAgent
from engine.board import Player as EnginePlayer
from engine.errors import GameError
from engine.game import GameController, MoveRecord
from engine.pieces import shape_to_rows
from schemas.game_config import GameConfig, PlayerColor
from schemas.game_state import (
    ErrorResponse, Evaluation, GameState, GameStatus, MoveResponse, PieceView, PlayerPool
)
from schemas.move import BestMove, MoveRecordView, PlacementRequest, SelectRequest

logger = logging.getLogger(__name__)


class GameSessionManager:
    """Owns the one active game and converts it to API schemas."""

    def __init__(self, config: Optional[GameConfig] = None):
        self.config = config or GameConfig()
        self.controller = GameController(self.config.to_settings(), agent_factory=MobilityAgent)

    def new_game(self, config: GameConfig) -> GameState:
        """Start a new game, replacing the current one."""
        with self.controller.lock:
            self.config = config
            self.controller.restart(config.to_settings())
            logger.info(f"Game created: board_size={config.board_size}, seed={self.controller.seed}")
            return self._create_game_state(include_hints=False)

    def get_game_state(self, include_hints: bool = False) -> GameState:
        with self.controller.lock:
            return self._create_game_state(include_hints)

    def select_piece(self, request: SelectRequest) -> GameState:
        with self.controller.lock:
            self.controller.select_piece(request.player.value, request.piece_index)
            return self._create_game_state(include_hints=False)

    def rotate_selected(self) -> GameState:
        with self.controller.lock:
            self.controller.rotate_selected()
            return self._create_game_state(include_hints=False)

    def flip_selected(self) -> GameState:
        with self.controller.lock:
            self.controller.flip_selected()
            return self._create_game_state(include_hints=False)

    def resume_ai(self) -> GameState:
        with self.controller.lock:
            self.controller.resume_ai_turn()
            return self._create_game_state(include_hints=False)

    def make_move(self, request: PlacementRequest) -> MoveResponse:
        """Place a piece for the side to move."""
        with self.controller.lock:
            try:
                record = self.controller.submit_placement(request.row, request.col, request.piece_index)
            except GameError as e:
                logger.warning(f"HUMAN MOVE rejected: {e.message} (row={request.row}, col={request.col}, piece={request.piece_index})")
                return MoveResponse(success=False, message=e.message, game_state=self._create_game_state(False))

            return MoveResponse(success=True, message=self._describe_move(record),
                                game_state=self._create_game_state(False))

    def undo(self) -> MoveResponse:
        """Take back the last move."""
        with self.controller.lock:
            try:
                record = self.controller.undo()
            except GameError as e:
                logger.warning(f"UNDO rejected: {e.message}")
                return MoveResponse(success=False, message=e.message, game_state=self._create_game_state(False))

            return MoveResponse(
                success=True,
                message=f"{record.player.label} undid their move.",
                game_state=self._create_game_state(False)
            )

    async def play_ai_turn(self) -> None:
        """Background task: play the queued AI turn after the configured delay."""
        record = await self.controller.play_pending_ai_turn()
        if record is not None:
            logger.info(f"AI MOVE: {self._describe_move(record)}")

    def _describe_move(self, record: MoveRecord) -> str:
        message = (f"{record.player.label} placed piece {record.piece_index} at "
                   f"({record.row},{record.col}) - {record.label.value}")
        winner = self.controller.winner
        if winner is not None:
            loser = winner.opponent
            message += f". {winner.label.capitalize()} wins! No legal moves left for {loser.label}."
        return message

    def _create_game_state(self, include_hints: bool) -> GameState:
        """Create game state from the controller."""
        controller = self.controller
        state = controller.state

        pools = []
        for player in EnginePlayer:
            pool = controller.get_pool(player)
            pieces = [
                PieceView(index=piece.index, shape=shape_to_rows(piece.shape), size=piece.size, available=piece.available)
                for piece in pool.pieces()
            ]
            pools.append(PlayerPool(
                player=_to_color(player),
                pieces=pieces,
                remaining=len(pool.available_indices())
            ))

        cyan_percent, red_percent = controller.evaluation()

        best_moves: Optional[List[BestMove]] = None
        if include_hints:
            best_moves = [
                BestMove(piece_index=move.piece_index, row=move.row, col=move.col)
                for move in controller.suggest_best_moves()
            ]

        return GameState(
            status=GameStatus(controller.status.value),
            current_player=_to_color(state.turn),
            winner=_to_color(state.winner) if state.winner else None,
            board_size=controller.board.size,
            seed=controller.seed,
            board=controller.board.to_owner_grid(),
            pools=pools,
            evaluation=Evaluation(cyan_percent=cyan_percent, red_percent=red_percent),
            history=[_to_record_view(record) for record in state.history],
            selected_piece_index=state.selected_index,
            ai_player=_to_color(controller.ai_player) if controller.ai_player else None,
            ai_turn_pending=state.ai_turn_pending,
            best_moves=best_moves
        )


def _to_color(player: EnginePlayer) -> PlayerColor:
    return PlayerColor(player.label)


def _to_record_view(record: MoveRecord) -> MoveRecordView:
    return MoveRecordView(
        move_number=record.move_number,
        player=_to_color(record.player),
        piece_index=record.piece_index,
        row=record.row,
        col=record.col,
        label=record.label.value,
        evaluation=round(record.evaluation, 3),
        you_legal_before=record.you_legal_before,
        opp_legal_before=record.opp_legal_before,
        you_legal_after=record.you_legal_after,
        opp_legal_after=record.opp_legal_after,
        ratio_before=round(record.ratio_before, 3),
        ratio_after=round(record.ratio_after, 3),
        delta_you=round(record.delta_you, 3),
        delta_opp=round(record.delta_opp, 3)
    )


def create_app(config: Optional[GameConfig] = None) -> FastAPI:
    """
    Build the FastAPI app with a fresh game session.

    Args:
        config: Configuration for the initial game (defaults apply when omitted)
    """
    manager = GameSessionManager(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Play the AI's opening move when the initial game starts with it."""
        opening_task = None
        if manager.controller.ai_turn_pending:
            logger.info("AI moves first, scheduling its turn")
            opening_task = asyncio.create_task(manager.play_ai_turn())
        yield
        if opening_task is not None and not opening_task.done():
            opening_task.cancel()

    app = FastAPI(
        title="Polyomino Duel API",
        description="Two-player polyomino placement game with a mobility AI",
        version="1.0.0",
        lifespan=lifespan
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.manager = manager

    def schedule_ai_turn(background_tasks: BackgroundTasks) -> None:
        if manager.controller.ai_turn_pending:
            background_tasks.add_task(manager.play_ai_turn)

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError):
        """Rejected game commands leave the state unchanged and answer 400."""
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=type(exc).__name__, message=exc.message).model_dump()
        )

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.post("/api/game", response_model=GameState)
    def create_game(config: GameConfig, background_tasks: BackgroundTasks):
        """Start a new game (replaces the current one)."""
        game_state = manager.new_game(config)
        schedule_ai_turn(background_tasks)
        return game_state

    @app.get("/api/game", response_model=GameState)
    def get_game(include_hints: bool = False):
        return manager.get_game_state(include_hints=include_hints)

    @app.post("/api/game/select", response_model=GameState)
    def select_piece(request: SelectRequest):
        return manager.select_piece(request)

    @app.post("/api/game/rotate", response_model=GameState)
    def rotate_piece():
        return manager.rotate_selected()

    @app.post("/api/game/flip", response_model=GameState)
    def flip_piece():
        return manager.flip_selected()

    @app.post("/api/game/placement", response_model=MoveResponse)
    def place_piece(request: PlacementRequest, background_tasks: BackgroundTasks):
        response = manager.make_move(request)
        if response.success:
            schedule_ai_turn(background_tasks)
        return response

    @app.post("/api/game/undo", response_model=MoveResponse)
    def undo_move():
        return manager.undo()

    @app.post("/api/game/resume-ai", response_model=GameState)
    def resume_ai(background_tasks: BackgroundTasks):
        game_state = manager.resume_ai()
        schedule_ai_turn(background_tasks)
        return game_state

    return app
