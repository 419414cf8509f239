import pytest

from sosim.registers import (
    Operation,
    Process,
    ProcessState,
    Register,
    Registers,
    parse_register,
)


@pytest.mark.parametrize("register", list(Register))
def test_parse_register_round_trip(register):
    assert parse_register(register.name) is register


def test_parse_register_accepts_register():
    assert parse_register(Register.EDX) is Register.EDX


@pytest.mark.parametrize("name", ["", "ax", "XX", "EAXX"])
def test_parse_register_rejects_unknown(name):
    with pytest.raises(ValueError):
        parse_register(name)


@pytest.mark.parametrize("register", [Register.AX, Register.BX, Register.CX, Register.DX])
def test_small_registers_are_one_byte(register):
    assert register.width() == 1


@pytest.mark.parametrize(
    "register",
    [Register.EAX, Register.EBX, Register.ECX, Register.EDX, Register.SI, Register.DI, Register.PC],
)
def test_large_registers_are_four_bytes(register):
    assert register.width() == 4


@pytest.mark.parametrize("register", list(Register))
def test_assign_then_get(register):
    regs = Registers()
    regs.update(register, 200, Operation.ASSIGN)
    assert regs.get(register) == 200
    assert regs.get(register.name) == 200


def test_assign_touches_only_target():
    regs = Registers()
    regs.update("ECX", 42, Operation.ASSIGN)
    assert [regs.get(r) for r in Register if r is not Register.ECX] == [0] * 10


@pytest.mark.parametrize("register", list(Register))
def test_sum_then_sub_restores(register):
    regs = Registers()
    regs.update(register, 10, Operation.ASSIGN)
    regs.update(register, 77, Operation.SUM)
    regs.update(register, 77, Operation.SUB)
    assert regs.get(register) == 10


def test_eight_bit_register_wraps_on_sum():
    regs = Registers()
    regs.update("AX", 255, Operation.ASSIGN)
    regs.update("AX", 1, Operation.SUM)
    assert regs.get("AX") == 0


def test_thirty_two_bit_register_wraps_on_sub():
    regs = Registers()
    regs.update("EAX", 1, Operation.SUB)
    assert regs.get("EAX") == 0xFFFFFFFF


@pytest.mark.parametrize("register", list(Register))
def test_values_stay_within_width(register):
    regs = Registers()
    regs.update(register, 1 << 40, Operation.ASSIGN)
    regs.update(register, (1 << 36) - 3, Operation.SUM)
    assert 0 <= regs.get(register) < (1 << (8 * register.width()))


def test_update_default_is_assign():
    regs = Registers(bx=9)
    regs.update("BX", 4)
    assert regs.get("BX") == 4


def test_update_rejects_unknown_register():
    with pytest.raises(ValueError):
        Registers().update("ZX", 1, Operation.ASSIGN)


def test_process_defaults():
    process = Process(pid=5)
    assert process.pid == 5
    assert process.state is ProcessState.READY
    assert process.registers == Registers()