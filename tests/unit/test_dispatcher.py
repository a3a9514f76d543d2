"""Unit tests for Dispatcher and the instruction registry."""

import pytest

from fungesim.core.dispatcher import (
    Dispatcher,
    Effect,
    Fingerprint,
    InstructionRegistry,
    trunc_div,
    trunc_mod,
)
from fungesim.core.grid import Grid
from fungesim.core.io import ProgramIO
from fungesim.core.pointer import InstructionPointer
from fungesim.core.scheduler import RunConfig
from fungesim.core.stack import CellStack, StackMode
from fungesim.core.vector import CARDINALS, EAST, NORTH, SOUTH, WEST


def execute(text, stack=(), direction=EAST, config=None, dispatcher=None):
    """Dispatch the cell at (0, 0) of `text` once; return (ip, effect, grid)."""
    grid = Grid.load(text)
    ip = InstructionPointer(id=0, position=(0, 0), direction=direction, stack=CellStack(stack))
    dispatcher = dispatcher or Dispatcher(seed=0)
    effect = dispatcher.execute(ip, grid, config or RunConfig())
    return ip, effect, grid


class PushConstant:
    """Handler pushing a fixed value."""

    def __init__(self, value):
        self.value = value

    def execute(self, pointer, grid):
        pointer.stack.push(self.value)


class Halter:
    def execute(self, pointer, grid):
        return Effect(halt="handler asked")


class TestArithmeticHelpers:
    """Tests for truncating division."""

    @pytest.mark.parametrize("a,b,q,r", [
        (7, 2, 3, 1),
        (-7, 2, -3, -1),
        (7, -2, -3, 1),
        (-7, -2, 3, -1),
        (6, 3, 2, 0),
    ])
    def test_truncation(self, a, b, q, r):
        assert trunc_div(a, b) == q
        assert trunc_mod(a, b) == r

    def test_zero_divisor(self):
        assert trunc_div(5, 0) == 0
        assert trunc_mod(5, 0) == 0


class TestLiterals:
    """Tests for digit and hex literals."""

    def test_digits_and_hex(self, run_program):
        s = run_program("0123456789abcdef@")
        assert s.stack_dump()[0] == list(range(16))


class TestArithmetic:
    """Tests for binary operators, end to end."""

    @pytest.mark.parametrize("program,expected", [
        ("ab+@", [21]),
        ("52-@", [3]),
        ("43*@", [12]),
        ("72/@", [3]),
        ("72%@", [1]),
        ("07-2/@", [-3]),
        ("07-2%@", [-1]),
        ("50/@", [0]),
        ("50%@", [0]),
        ("52`@", [1]),
        ("25`@", [0]),
        ("55`@", [0]),
        ("0!@", [1]),
        ("5!@", [0]),
    ])
    def test_operator(self, run_program, program, expected):
        assert run_program(program).stack_dump()[0] == expected

    def test_underflow_reads_zero(self, run_program):
        assert run_program("+@").stack_dump()[0] == [0]


class TestStackInstructions:
    """Tests for : $ \\ n q s l."""

    def test_duplicate(self, run_program):
        assert run_program("5:@").stack_dump()[0] == [5, 5]

    def test_duplicate_empty(self, run_program):
        assert run_program(":@").stack_dump()[0] == [0, 0]

    def test_discard(self, run_program):
        assert run_program("12$@").stack_dump()[0] == [1]

    def test_swap(self, run_program):
        assert run_program("12\\@").stack_dump()[0] == [2, 1]

    def test_clear(self, run_program):
        assert run_program("123n@").stack_dump()[0] == []

    def test_queue_mode(self, run_program):
        assert run_program("123q..@").output == "12"

    def test_stack_mode_restores_lifo(self, run_program):
        assert run_program("123qs..@").output == "32"

    def test_queue_mode_flag(self):
        ip, _, _ = execute("q")
        assert ip.stack.mode is StackMode.FIFO
        ip, _, _ = execute("s", stack=())
        assert ip.stack.mode is StackMode.LIFO

    def test_permute_swaps_top_two(self, run_program):
        assert run_program("1231l@").stack_dump()[0] == [1, 3, 2]

    def test_permute_out_of_range_keeps_stack(self, run_program):
        assert run_program("129l@").stack_dump()[0] == [1, 2]


class TestFlowControl:
    """Tests for direction-changing instructions."""

    @pytest.mark.parametrize("cell,expected", [(">", EAST), ("<", WEST), ("^", NORTH), ("v", SOUTH)])
    def test_cardinal(self, cell, expected):
        ip, _, _ = execute(cell, direction=SOUTH if expected != SOUTH else EAST)
        assert ip.direction == expected

    def test_rotate_left_right(self):
        assert execute("[")[0].direction == NORTH
        assert execute("]")[0].direction == SOUTH

    def test_reflect(self):
        assert execute("r", direction=NORTH)[0].direction == SOUTH

    def test_horizontal_if(self):
        assert execute("_", stack=[0], direction=NORTH)[0].direction == EAST
        assert execute("_", stack=[3])[0].direction == WEST

    def test_vertical_if(self):
        assert execute("|", stack=[0])[0].direction == SOUTH
        assert execute("|", stack=[-1])[0].direction == NORTH

    def test_compare_turns(self):
        assert execute("w", stack=[1, 2])[0].direction == NORTH   # lesser: left
        assert execute("w", stack=[3, 2])[0].direction == SOUTH   # greater: right
        assert execute("w", stack=[2, 2])[0].direction == EAST    # equal: straight

    def test_random_direction_is_cardinal(self):
        dispatcher = Dispatcher(seed=7)
        seen = set()
        for _ in range(100):
            ip, _, _ = execute("?", dispatcher=dispatcher)
            assert ip.direction in CARDINALS
            seen.add(ip.direction)
        assert seen == set(CARDINALS)

    def test_random_direction_reproducible(self):
        def directions(seed):
            d = Dispatcher(seed=seed)
            return [execute("?", dispatcher=d)[0].direction for _ in range(20)]

        assert directions(3) == directions(3)

    def test_jump_forward(self):
        ip, _, _ = execute("j....", stack=[2])
        assert ip.position == (2, 0)

    def test_jump_backward_wraps(self):
        ip, _, _ = execute("j....", stack=[-1])
        assert ip.position == (4, 0)
        assert ip.direction == EAST

    def test_jump_end_to_end(self, run_program):
        # 2j skips the 8 and 9 cells
        assert run_program("2j897@").stack_dump()[0] == [7]

    def test_trampoline(self, run_program):
        assert run_program("#12@").stack_dump()[0] == [2]

    def test_skip_flag(self):
        ip, _, _ = execute(";")
        assert ip.skipping

    def test_skip_end_to_end(self, run_program):
        assert run_program("1;23;4@").stack_dump()[0] == [1, 4]

    def test_fetch_character(self):
        ip, _, _ = execute("'A")
        assert ip.stack.to_list() == [ord("A")]
        assert ip.position == (1, 0)

    def test_fetch_end_to_end(self, run_program):
        assert run_program("'@.@").output == str(ord("@"))

    def test_stop(self):
        _, effect, _ = execute("@")
        assert effect.die


class TestIterate:
    """Tests for k."""

    def test_repeats_next_instruction(self, run_program):
        s = run_program("3k1@")
        assert s.stack_dump()[0] == [1, 1, 1]

    def test_zero_skips_next_instruction(self, run_program):
        s = run_program("0k1@")
        assert s.stack_dump()[0] == []
        assert s.tick == 3

    def test_negative_count_is_noop(self, run_program):
        assert run_program("01-k5@").stack_dump()[0] == [5]

    def test_passes_over_spaces_and_skipped_regions(self, run_program):
        assert run_program("2k ;9; 5@").stack_dump()[0] == [5, 5]

    def test_direction_cell_turns_at_k(self):
        ip, _, _ = execute("kv", stack=[2])
        assert ip.direction == SOUTH
        assert ip.position == (0, 0)

    def test_direction_cell_end_to_end(self, run_program):
        # k turns the pointer south in place; it never lands on the v
        s = run_program("1kv\n @")
        assert s.halted
        assert s.tick == 3

    def test_nothing_ahead_is_noop(self):
        ip, effect, _ = execute("k   ", stack=[4, 2])
        assert ip.stack.to_list() == [4]
        assert ip.position == (0, 0)
        assert effect == Effect()

    def test_stops_at_first_effect(self, run_program):
        s = run_program("3k@5")
        assert s.halted
        assert s.tick == 2
        assert s.stack_dump() == {0: []}

    def test_resumes_after_waiting_for_input(self, make_scheduler):
        s = make_scheduler("2k&@")
        s.io.feed("4 ")
        s.run(max_ticks=5)
        ip = s.pointers[0]
        assert ip.awaiting_input
        assert ip.position == (1, 0)
        assert ip.stack.to_list() == [4, 1]

        s.io.feed("5\n")
        s.run()
        assert s.halted
        assert s.stack_dump()[0] == [4, 5]


class TestNoOps:
    """Tests for space, z, reserved letters and unknown cells."""

    @pytest.mark.parametrize("cell", [" ", "z", "h", "m", "X", "é"])
    def test_noop_cells(self, cell):
        ip, effect, _ = execute(cell, stack=[4])
        assert ip.direction == EAST
        assert ip.position == (0, 0)
        assert ip.stack.to_list() == [4]
        assert effect == Effect()

    def test_unknown_reflects_when_configured(self):
        ip, _, _ = execute("X", config=RunConfig(unknown_policy="reflect"))
        assert ip.direction == WEST

    def test_reserved_not_reflected(self):
        ip, _, _ = execute("h", config=RunConfig(unknown_policy="reflect"))
        assert ip.direction == EAST

    def test_instruction_listing(self):
        listing = Dispatcher().instructions
        for ch in "0af+-*/%!`:$\\n><^v?[]r_|wjk#;\"'.,&~gpqslt@zhm ":
            assert ch in listing
        assert "X" not in listing


class TestOutput:
    """Tests for . and ,."""

    def test_output_integer(self, run_program):
        assert run_program("55+.@").output == "10"

    def test_output_negative(self, run_program):
        assert run_program("05-.@").output == "-5"

    def test_output_char(self, run_program):
        assert run_program("88*1+,@").output == "A"

    def test_output_invalid_char_is_space(self, run_program):
        assert run_program("01-,@").output == " "


class TestInput:
    """Tests for & and ~."""

    def test_read_integer(self, make_scheduler):
        s = make_scheduler("&.@")
        s.io.feed("42\n")
        s.run()
        assert s.output == "42"

    def test_read_char(self, make_scheduler):
        s = make_scheduler("~.@")
        s.io.feed("A")
        s.run()
        assert s.output == "65"

    def test_waits_without_blocking(self, make_scheduler):
        s = make_scheduler("&.@")
        for _ in range(5):
            assert s.step()
        ip = s.pointers[0]
        assert ip.awaiting_input
        assert ip.position == (0, 0)
        assert s.tick == 5

        s.io.feed("7\n")
        s.run()
        assert s.output == "7"
        assert s.halted

    def test_integer_fed_one_key_at_a_time(self, make_scheduler):
        s = make_scheduler("&.@")
        for key in "-12":
            s.io.feed(key)
            s.run(max_ticks=3)
            assert s.pointers[0].awaiting_input
        s.io.feed("\n")
        s.run()
        assert s.output == "-12"

    def test_eof_reflects(self, make_scheduler):
        s = make_scheduler("~.@")
        s.io.close_input()
        s.run()
        # reflected west, wrapped onto @
        assert s.output == ""
        assert s.halted

    def test_hold_effect(self):
        _, effect, _ = execute("~")
        assert effect.hold

    def test_shared_io_across_pointers(self):
        io = ProgramIO("xy")
        dispatcher = Dispatcher(io=io)
        a, _, _ = execute("~", dispatcher=dispatcher)
        b, _, _ = execute("~", dispatcher=dispatcher)
        assert a.stack.to_list() == [ord("x")]
        assert b.stack.to_list() == [ord("y")]


class TestGridInstructions:
    """Tests for g and p."""

    def test_get(self, run_program):
        assert run_program("11g@\n x").stack_dump()[0] == [ord("x")]

    def test_get_outside_reads_space(self, run_program):
        assert run_program("99g@").stack_dump()[0] == [32]

    def test_put_in_bounds(self, run_program):
        s = run_program("a10p@")
        assert s.grid.get((1, 0)) == 10
        assert s.stack_dump()[0] == []

    def test_put_out_of_bounds_kills_writer(self, run_program):
        s = run_program("a90p5@")
        assert s.halted
        assert s.tick == 4
        assert s.stack_dump()[0] == []
        assert s.grid.get((9, 0)) == 32

    def test_put_out_of_bounds_with_extend(self, run_program):
        s = run_program("a90p5@", extend_bounds=True)
        assert s.grid.get((9, 0)) == 10
        assert s.stack_dump()[0] == [5]
        assert not s.grid.in_bounds((9, 0))

    def test_put_effect(self):
        _, effect, _ = execute("p", stack=[1, 9, 9])
        assert effect.die


class TestRegistry:
    """Tests for the extension point."""

    def test_push_lookup_pop(self):
        reg = InstructionRegistry()
        first, second = PushConstant(1), PushConstant(2)
        reg.push("A", first)
        reg.push("A", second)
        assert reg.lookup("A") is second
        assert reg.pop("A") is second
        assert reg.lookup("A") is first
        reg.pop("A")
        assert "A" not in reg

    def test_rejects_non_letters(self):
        reg = InstructionRegistry()
        with pytest.raises(ValueError):
            reg.push("a", PushConstant(1))
        with pytest.raises(ValueError):
            reg.push("AB", PushConstant(1))

    def test_pop_empty_raises(self):
        with pytest.raises(KeyError):
            InstructionRegistry().pop("Q")

    def test_fingerprint_load_unload(self):
        reg = InstructionRegistry()
        fp = Fingerprint("TEST", {"A": PushConstant(1), "B": PushConstant(2)})
        reg.load(fp)
        assert reg.letters == ["A", "B"]
        reg.unload(fp)
        assert reg.letters == []

    def test_fingerprint_id(self):
        assert Fingerprint("NULL").id == 0x4E554C4C

    def test_dispatch_through_registry(self):
        reg = InstructionRegistry()
        reg.push("K", PushConstant(99))
        ip, effect, _ = execute("K", dispatcher=Dispatcher(registry=reg))
        assert ip.stack.to_list() == [99]
        assert effect == Effect()

    def test_unloaded_letter_uses_unknown_policy(self):
        ip, _, _ = execute("K", config=RunConfig(unknown_policy="reflect"))
        assert ip.direction == WEST

    def test_handler_effects_reach_scheduler(self, make_scheduler):
        s = make_scheduler("H5@")
        s.registry.push("H", Halter())
        s.step()
        assert s.halted
        assert s.halt_reason == "handler asked"
