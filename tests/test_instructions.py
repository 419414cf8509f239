import pytest

from sosim.instructions import Opcode, decode, parse_opcode, split_instruction
from sosim.registers import Registers


class RecordingTranslate:
    def __init__(self, result=4242):
        self.result = result
        self.calls = []

    def __call__(self, logical_address, pid):
        self.calls.append((logical_address, pid))
        return self.result


@pytest.mark.parametrize("opcode", list(Opcode))
def test_parse_opcode_round_trip(opcode):
    assert parse_opcode(opcode.value) is opcode


@pytest.mark.parametrize("name", ["", "set", "NOP", "MOVIN"])
def test_parse_opcode_rejects_unknown(name):
    with pytest.raises(ValueError):
        parse_opcode(name)


def test_split_instruction_drops_empty_tokens():
    assert split_instruction("SET  AX 1 ") == ["SET", "AX", "1"]


def test_split_instruction_round_trip():
    text = "IO_FS_WRITE Int4 notas.txt AX BX ECX"
    assert " ".join(split_instruction(text)) == text


@pytest.mark.parametrize(
    "text", ["SET AX 1", "SUM AX BX", "SUB EAX ECX", "JNZ AX 4", "WAIT RA", "EXIT", "RESIZE 128"]
)
def test_untranslated_instructions_pass_through(text):
    translate = RecordingTranslate()
    assert decode(text, Registers(ax=3), 1, translate) == text
    assert translate.calls == []


def test_unknown_instruction_passes_through():
    translate = RecordingTranslate()
    assert decode("FOO 1 2", Registers(), 1, translate) == "FOO 1 2"


def test_empty_instruction_rejected():
    with pytest.raises(ValueError):
        decode("   ", Registers(), 1, RecordingTranslate())


def test_mov_in_translates_address_register():
    translate = RecordingTranslate()
    regs = Registers(eax=17)
    assert decode("MOV_IN EDX EAX", regs, 3, translate) == "MOV_IN EDX 4242"
    assert translate.calls == [(17, 3)]


def test_mov_out_resolves_data_and_address():
    translate = RecordingTranslate()
    regs = Registers(bx=7, ecx=100)
    assert decode("MOV_OUT ECX BX", regs, 2, translate) == "MOV_OUT 7 4242"
    assert translate.calls == [(100, 2)]


def test_copy_string_uses_si_and_di():
    mapping = {12: 500, 40: 900}
    calls = []

    def translate(logical, pid):
        calls.append((logical, pid))
        return mapping[logical]

    regs = Registers(si=12, di=40)
    assert decode("COPY_STRING 8", regs, 6, translate) == "COPY_STRING 8 500 900"
    assert calls == [(12, 6), (40, 6)]


@pytest.mark.parametrize("op", ["IO_STDIN_READ", "IO_STDOUT_WRITE"])
def test_stdio_instructions(op):
    translate = RecordingTranslate()
    regs = Registers(eax=33, ax=11)
    assert decode(f"{op} Teclado EAX AX", regs, 4, translate) == f"{op} Teclado 4242 11"
    assert translate.calls == [(33, 4)]


def test_fs_truncate_resolves_size_only():
    translate = RecordingTranslate()
    regs = Registers(ebx=64)
    result = decode("IO_FS_TRUNCATE FS notas.txt EBX", regs, 1, translate)
    assert result == "IO_FS_TRUNCATE FS notas.txt 64"
    assert translate.calls == []


@pytest.mark.parametrize("op", ["IO_FS_WRITE", "IO_FS_READ"])
def test_fs_read_write(op):
    translate = RecordingTranslate()
    regs = Registers(ax=5, bx=9, ecx=21)
    result = decode(f"{op} FS notas.txt AX BX ECX", regs, 8, translate)
    assert result == f"{op} FS notas.txt 4242 9 21"
    assert translate.calls == [(5, 8)]


def test_decode_rejects_invalid_register():
    with pytest.raises(ValueError):
        decode("MOV_IN AX QX", Registers(), 1, RecordingTranslate())