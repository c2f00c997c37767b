# tisasm/tests/test_disassembler.py
import pytest
from tisasm.tis_assembler import TisAssembler
from tisasm.tis_disassembler import TisDisassembler

@pytest.fixture
def disassembler():
    """Provides a new TisDisassembler instance for each test."""
    return TisDisassembler()

def assemble_nodes(code):
    result = TisAssembler().assemble(code)
    assert not result["errors"], f"Expected no errors, got: {result['errors']}"
    return [{"header": n["header"], "words": [w["bin"] for w in n["words"]]} for n in result["nodes"]]

@pytest.mark.parametrize("bits, expected", [
    ("0001" + "011111111011" + "10001", "MOV -5 ACC"),
    ("0001" + "110000000101" + "11100", "MOV LAST ANY"),
    ("0100" + "001111111111" + "00000", "ADD 1023"),
    ("0101" + "010000000000" + "00000", "SUB -1024"),
    ("1101" + "100000000000" + "00000", "JRO NIL"),
    ("1000" + "000000000000" + "00011", "JMP L3"),
    ("1111" + "000000000000" + "00000", "HCF"),
])
def test_disassemble_word(disassembler, bits, expected):
    assert disassembler.disassemble_word(int(bits, 2)) == expected
    assert not disassembler.errors

def test_disassemble_unknown_opcode(disassembler):
    text = disassembler.disassemble_word(int("0111" + "0" * 17, 2))
    assert text.startswith("Unknown Instruction")
    assert "Unknown opcode 0b0111" in disassembler.errors[0]["message"]

def test_disassemble_reserved_source(disassembler):
    disassembler.disassemble_word(int("0100" + "100000000111" + "00000", 2))
    assert "Reserved source field" in disassembler.errors[0]["message"]

def test_disassemble_word_out_of_range(disassembler):
    disassembler.disassemble_word(1 << 21)
    assert disassembler.errors

def test_disassemble_nodes_with_labels(disassembler):
    nodes = assemble_nodes("<<T21(1,2)>>\nSTART: MOV UP ACC\nLOOP: SUB 1\nJGZ LOOP\nJMP START")
    result = disassembler.disassemble(nodes)
    assert not result["errors"], f"Expected no errors, got: {result['errors']}"
    assert result["nodes"][0]["header"] == "1,2,T21"
    assert result["nodes"][0]["assembly"].splitlines() == [
        "L0: MOV UP ACC",
        "L1: SUB 1",
        "JGZ L1",
        "JMP L0",
    ]

def test_disassembly_reassembles_to_same_words(disassembler):
    nodes = assemble_nodes("@0\nA: MOV -7 RIGHT\nADD LEFT\nJEZ A\nSWP\nSAV\nNEG")
    assembly = disassembler.disassemble(nodes)["nodes"][0]["assembly"]
    again = assemble_nodes("@0\n" + assembly)
    assert again[0]["words"] == nodes[0]["words"]

def test_disassemble_invalid_binary_continues(disassembler):
    nodes = [{"header": "0,0,NODE T-21", "words": ["0102", "0" * 21]}]
    result = disassembler.disassemble(nodes)
    assert len(result["errors"]) == 1
    assert result["errors"][0]["line"] == 0
    lines = result["nodes"][0]["assembly"].splitlines()
    assert lines[0].startswith("Error line 0")
    assert lines[1] == "NOP"

def test_disassemble_word_clears_previous_errors(disassembler):
    disassembler.disassemble_word(int("1110" + "0" * 17, 2))
    assert disassembler.errors
    assert disassembler.disassemble_word(0) == "NOP"
    assert disassembler.errors == []

def test_disassemble_collects_errors_across_words(disassembler):
    bad = "0111" + "0" * 17
    nodes = [{"header": "0,0,NODE T-21", "words": [bad, "0" * 21, bad]}]
    result = disassembler.disassemble(nodes)
    assert [e["line"] for e in result["errors"]] == [0, 2]
    assert all(e["node"] == "0,0,NODE T-21" for e in result["errors"])
