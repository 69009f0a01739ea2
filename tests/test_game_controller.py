"""
Tests for the game controller: turns, placements, history, undo and AI turns.
"""

import asyncio
import threading
import unittest
from unittest.mock import patch

import numpy as np

from agents.mobility_agent import MobilityAgent
from engine.board import Player
from engine.classifier import MoveQuality, classify_move, compute_deltas
from engine.config import GameSettings
from engine.errors import AITurnPending, InvalidPlacement, InvalidSelection, NothingToUndo
from engine.game import GameController, GameStatus
from engine.move_generator import Move


def two_player_settings(**overrides):
    values = dict(board_size=5, seed="controller", ai_player=None, ai_delay_seconds=0)
    values.update(overrides)
    return GameSettings(**values)


class TestTurnsAndPlacement(unittest.TestCase):
    """Two humans sharing the controller."""

    def setUp(self):
        self.controller = GameController(two_player_settings(), agent_factory=MobilityAgent)

    def test_initial_state(self):
        self.assertEqual(self.controller.status, GameStatus.CYAN_TO_MOVE)
        self.assertEqual(self.controller.turn, Player.CYAN)
        self.assertEqual(self.controller.history, [])
        self.assertFalse(self.controller.ai_turn_pending)
        self.assertEqual(self.controller.board.size, 5)
        self.assertEqual(self.controller.evaluation(), (50.0, 50.0))

    def test_first_move_is_recorded_and_passes_turn(self):
        record = self.controller.submit_placement(0, 0, piece_index=0)

        self.assertEqual(record.move_number, 1)
        self.assertEqual(record.player, Player.CYAN)
        self.assertEqual(record.label, MoveQuality.GOOD)
        self.assertEqual(self.controller.turn, Player.RED)
        self.assertEqual(self.controller.status, GameStatus.RED_TO_MOVE)
        self.assertEqual(self.controller.board.grid[0, 0], Player.CYAN.value)
        self.assertFalse(self.controller.get_pool(Player.CYAN).is_available(0))
        self.assertTrue(self.controller.get_pool(Player.RED).is_available(0))

    def test_record_counts_match_position(self):
        controller = self.controller
        fresh_count = controller.count_legal_moves(Player.CYAN)
        first = controller.submit_placement(0, 0, piece_index=0)
        self.assertEqual(first.you_legal_before, fresh_count)
        self.assertEqual(first.opp_legal_before, fresh_count)
        self.assertEqual(first.you_legal_after, controller.count_legal_moves(Player.CYAN))
        self.assertEqual(first.opp_legal_after, controller.count_legal_moves(Player.RED))

        second = controller.submit_placement(4, 4, piece_index=0)
        # Before-counts carry over from the previous move, seen from the new mover
        self.assertEqual(second.you_legal_before, first.opp_legal_after)
        self.assertEqual(second.opp_legal_before, first.you_legal_after)
        deltas = compute_deltas(second.you_legal_before, second.opp_legal_before,
                                second.you_legal_after, second.opp_legal_after)
        self.assertAlmostEqual(second.delta_you, deltas.delta_you)
        self.assertAlmostEqual(second.delta_opp, deltas.delta_opp)
        self.assertEqual(second.label, classify_move(deltas, is_first_move=False))

    def test_invalid_placement_changes_nothing(self):
        for row, col, index in [(0, 1, 0), (-1, 0, 0), (4, 4, 10000), (2, 2, 1)]:
            with self.subTest(row=row, col=col, index=index):
                with self.assertRaises(InvalidPlacement):
                    self.controller.submit_placement(row, col, piece_index=index)

        self.assertFalse(self.controller.board.grid.any())
        self.assertEqual(self.controller.turn, Player.CYAN)
        self.assertEqual(self.controller.history, [])
        self.assertEqual(self.controller.get_pool(Player.CYAN).used, set())
        self.assertFalse(self.controller.board.has_played[Player.CYAN])

    def test_invalid_placement_message(self):
        with self.assertRaises(InvalidPlacement) as ctx:
            self.controller.submit_placement(0, 1, piece_index=0)
        self.assertEqual(ctx.exception.message, "Invalid placement!")

    def test_placed_piece_cannot_be_reused(self):
        self.controller.submit_placement(0, 0, piece_index=0)
        self.controller.submit_placement(4, 4, piece_index=0)
        with self.assertRaises(InvalidPlacement):
            self.controller.submit_placement(1, 1, piece_index=0)
        # Domino at (1, 1) touches (0, 0) only at a corner
        record = self.controller.submit_placement(1, 1, piece_index=1)
        self.assertEqual(record.move_number, 3)

    def test_reuse_pieces_keeps_piece_available(self):
        controller = GameController(two_player_settings(reuse_pieces=True), agent_factory=MobilityAgent)
        controller.submit_placement(0, 0, piece_index=0)
        controller.submit_placement(4, 4, piece_index=0)
        controller.submit_placement(1, 1, piece_index=0)
        self.assertTrue(controller.get_pool(Player.CYAN).is_available(0))
        self.assertEqual(controller.board.count_cells(Player.CYAN), 2)

    def test_no_piece_selected(self):
        with self.assertRaises(InvalidPlacement):
            self.controller.submit_placement(0, 0)


class TestSelection(unittest.TestCase):
    """Staging, rotating and flipping pieces."""

    def setUp(self):
        self.controller = GameController(two_player_settings(), agent_factory=MobilityAgent)

    def test_rotate_then_place_staged_piece(self):
        piece = self.controller.select_piece("cyan", 1)
        self.assertEqual(piece.shape.shape, (1, 2))
        rotated = self.controller.rotate_selected()
        np.testing.assert_array_equal(rotated, [[True], [True]])
        np.testing.assert_array_equal(self.controller.get_pool(Player.CYAN).shapes[1], rotated)
        # Red's copy of the piece is untouched
        self.assertEqual(self.controller.get_pool(Player.RED).shapes[1].shape, (1, 2))

        record = self.controller.submit_placement(0, 0)
        self.assertEqual(record.piece_index, 1)
        self.assertEqual(self.controller.board.grid[1, 0], Player.CYAN.value)
        self.assertEqual(self.controller.board.grid[0, 1], 0)
        self.assertIsNone(self.controller.state.selected_index)

    def test_flip_selected(self):
        # Piece 18 is the 2x2 L: [[1, 0], [1, 1]]
        self.controller.select_piece(Player.CYAN, 18)
        flipped = self.controller.flip_selected()
        np.testing.assert_array_equal(flipped, [[False, True], [True, True]])
        self.assertIs(self.controller.selected_piece.shape, flipped)

    def test_select_errors(self):
        with self.assertRaises(InvalidSelection):
            self.controller.select_piece("red", 0)
        with self.assertRaises(InvalidSelection):
            self.controller.select_piece("cyan", 10000)
        with self.assertRaises(InvalidSelection):
            self.controller.select_piece("purple", 0)
        with self.assertRaises(InvalidSelection):
            self.controller.rotate_selected()

    def test_select_used_piece(self):
        self.controller.submit_placement(0, 0, piece_index=0)
        self.controller.submit_placement(4, 4, piece_index=0)
        with self.assertRaises(InvalidSelection):
            self.controller.select_piece("cyan", 0)


class TestUndo(unittest.TestCase):

    def setUp(self):
        self.controller = GameController(two_player_settings(), agent_factory=MobilityAgent)

    def test_nothing_to_undo_changes_nothing(self):
        with self.assertRaises(NothingToUndo) as ctx:
            self.controller.undo()
        self.assertEqual(ctx.exception.message, "No moves to undo!")
        self.assertEqual(self.controller.turn, Player.CYAN)
        self.assertFalse(self.controller.board.grid.any())

    def test_undo_restores_board_pool_and_flags(self):
        controller = self.controller
        controller.submit_placement(0, 0, piece_index=0)
        grid_after_first = controller.board.grid.copy()
        controller.submit_placement(4, 4, piece_index=0)

        record = controller.undo()
        self.assertEqual(record.player, Player.RED)
        self.assertEqual(controller.turn, Player.RED)
        np.testing.assert_array_equal(controller.board.grid, grid_after_first)
        self.assertTrue(controller.get_pool(Player.RED).is_available(0))
        self.assertFalse(controller.board.has_played[Player.RED])
        self.assertTrue(controller.board.has_played[Player.CYAN])
        self.assertEqual(len(controller.history), 1)

        controller.undo()
        self.assertEqual(controller.turn, Player.CYAN)
        self.assertFalse(controller.board.grid.any())
        self.assertFalse(controller.board.has_played[Player.CYAN])
        self.assertEqual(controller.history, [])

    def test_undo_of_rotated_piece_clears_its_cells(self):
        controller = self.controller
        controller.select_piece("cyan", 1)
        controller.rotate_selected()
        controller.submit_placement(0, 0)
        controller.undo()
        self.assertFalse(controller.board.grid.any())

    def test_restart_clears_game(self):
        self.controller.submit_placement(0, 0, piece_index=0)
        self.controller.restart(two_player_settings(board_size=7))
        self.assertEqual(self.controller.history, [])
        self.assertEqual(self.controller.board.size, 7)
        self.assertFalse(self.controller.board.grid.any())
        self.assertEqual(self.controller.turn, Player.CYAN)


class TestAITurns(unittest.TestCase):
    """AI opponent playing red."""

    def setUp(self):
        self.settings = two_player_settings(ai_player="red", seed="ai-turns")
        self.controller = GameController(self.settings, agent_factory=MobilityAgent)

    def test_human_move_queues_ai_turn(self):
        self.controller.submit_placement(0, 0, piece_index=0)
        self.assertTrue(self.controller.ai_turn_pending)
        with self.assertRaises(AITurnPending):
            self.controller.submit_placement(1, 1, piece_index=1)
        with self.assertRaises(AITurnPending):
            self.controller.undo()

    def test_ai_plays_a_legal_best_move(self):
        controller = self.controller
        controller.submit_placement(0, 0, piece_index=0)
        legal = controller.get_legal_moves(Player.RED)
        best = controller.suggest_best_moves()

        record = controller.run_ai_turn()
        self.assertIsNotNone(record)
        self.assertEqual(record.player, Player.RED)
        move = Move(record.piece_index, record.row, record.col)
        self.assertIn(move, legal)
        self.assertIn(move, best)
        self.assertEqual(controller.turn, Player.CYAN)
        self.assertFalse(controller.ai_turn_pending)
        self.assertGreater(controller.board.count_cells(Player.RED), 0)

    def test_pending_turn_is_played_asynchronously(self):
        self.controller.submit_placement(0, 0, piece_index=0)
        record = asyncio.run(self.controller.play_pending_ai_turn())
        self.assertEqual(record.player, Player.RED)
        self.assertIsNone(asyncio.run(self.controller.play_pending_ai_turn()))

    def test_pending_turn_searches_off_the_event_loop_thread(self):
        controller = self.controller
        controller.submit_placement(0, 0, piece_index=0)
        search_threads = []
        real_select = controller.agent.select_action

        def select_action(*args):
            search_threads.append(threading.get_ident())
            return real_select(*args)

        async def play():
            with patch.object(controller.agent, 'select_action', side_effect=select_action):
                return await controller.play_pending_ai_turn()

        record = asyncio.run(play())
        self.assertEqual(record.player, Player.RED)
        self.assertEqual(len(search_threads), 1)
        self.assertNotEqual(search_threads[0], threading.get_ident())

    def test_same_seed_same_game(self):
        def play(controller):
            controller.submit_placement(0, 0, piece_index=0)
            controller.run_ai_turn()
            if controller.winner is None:
                move = controller.get_legal_moves(Player.CYAN)[0]
                controller.submit_placement(move.row, move.col, piece_index=move.piece_index)
                controller.run_ai_turn()
            return controller

        first = play(GameController(self.settings, agent_factory=MobilityAgent))
        second = play(GameController(self.settings, agent_factory=MobilityAgent))
        self.assertEqual(first.seed, second.seed)
        self.assertEqual(first.history, second.history)
        np.testing.assert_array_equal(first.board.grid, second.board.grid)

    def test_undo_hands_turn_back_to_paused_ai(self):
        controller = self.controller
        controller.submit_placement(0, 0, piece_index=0)
        controller.run_ai_turn()

        controller.undo()
        self.assertEqual(controller.turn, Player.RED)
        self.assertFalse(controller.ai_turn_pending)
        with self.assertRaises(InvalidPlacement):
            controller.submit_placement(4, 4, piece_index=0)

        self.assertTrue(controller.resume_ai_turn())
        record = controller.run_ai_turn()
        self.assertEqual(record.player, Player.RED)
        self.assertEqual(len(controller.history), 2)

    def test_undo_twice_returns_to_human(self):
        controller = self.controller
        controller.submit_placement(0, 0, piece_index=0)
        controller.run_ai_turn()
        controller.undo()
        controller.undo()
        self.assertEqual(controller.turn, Player.CYAN)
        self.assertFalse(controller.resume_ai_turn())
        self.assertFalse(controller.board.grid.any())

    def test_ai_can_move_first(self):
        controller = GameController(two_player_settings(ai_player="cyan"), agent_factory=MobilityAgent)
        self.assertTrue(controller.ai_turn_pending)
        with self.assertRaises(AITurnPending):
            controller.submit_placement(0, 0, piece_index=0)
        record = controller.run_ai_turn()
        self.assertEqual(record.player, Player.CYAN)
        self.assertEqual(record.label, MoveQuality.GOOD)
        self.assertEqual(controller.turn, Player.RED)
        self.assertFalse(controller.ai_turn_pending)

    def test_run_ai_turn_when_not_its_turn(self):
        self.assertIsNone(self.controller.run_ai_turn())
        self.assertEqual(self.controller.history, [])

    def test_agent_is_not_asked_without_pending_turn(self):
        with patch.object(self.controller.agent, "select_action") as select_action:
            self.assertIsNone(asyncio.run(self.controller.play_pending_ai_turn()))
            select_action.assert_not_called()


class TestAgentFactory(unittest.TestCase):
    """The controller builds its AI only through the injected factory."""

    def test_ai_player_requires_factory(self):
        with self.assertRaises(ValueError):
            GameController(two_player_settings(ai_player="red"))

    def test_two_humans_without_factory(self):
        controller = GameController(two_player_settings())
        self.assertIsNone(controller.agent)
        controller.submit_placement(0, 0, piece_index=0)
        with self.assertRaises(ValueError):
            controller.suggest_best_moves()

    def test_factory_receives_game_rng_and_move_generator(self):
        built = []

        def factory(rng, move_generator):
            agent = MobilityAgent(rng, move_generator)
            built.append((rng, move_generator))
            return agent

        controller = GameController(two_player_settings(ai_player="red"), agent_factory=factory)
        self.assertEqual(built, [(controller.rng, controller.move_generator)])
        controller.restart()
        self.assertEqual(len(built), 2)
        self.assertIs(built[1][0], controller.rng)


if __name__ == '__main__':
    unittest.main()
