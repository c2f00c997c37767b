# tisasm/tests/test_listing.py
from tisasm.tis_assembler import TisAssembler
from tisasm.tis_listing import format_listing, write_listing, parse_listing, format_error

NOP = "0" * 21
ADD_ACC = "0100" + "100000000001" + "00000"

def assemble(code):
    result = TisAssembler().assemble(code)
    assert not result["errors"], f"Expected no errors, got: {result['errors']}"
    return result["nodes"]

def test_format_listing():
    text = format_listing(assemble("@0\nNOP\n@5\nNOP\nADD ACC"))
    assert text == f"0,0,NODE T-21\n0: {NOP}\n\n1,1,NODE T-21\n0: {NOP}\n1: {ADD_ACC}\n\n"

def test_format_listing_empty():
    assert format_listing([]) == ""

def test_write_listing(tmp_path):
    out = tmp_path / "prog_bin.txt"
    write_listing(str(out), assemble("<<STACK(2,1)>>\nADD ACC"))
    assert out.read_text() == f"2,1,STACK\n0: {ADD_ACC}\n\n"

def test_parse_listing():
    text = format_listing(assemble("<<T21(0,0)>>\nNOP\nADD ACC\n<<T21(1,0)>>\n<<T21(2,0)>>\nNOP"))
    assert parse_listing(text) == [
        {"header": "0,0,T21", "words": [NOP, ADD_ACC]},
        {"header": "1,0,T21", "words": []},
        {"header": "2,0,T21", "words": [NOP]},
    ]

def test_format_error_with_line():
    error = TisAssembler().assemble("@2\nNOP\nFOO")["errors"][0]
    assert format_error(error) == "Error at (2,0), line 1: Invalid opcode 'FOO'"

def test_format_error_without_line():
    error = TisAssembler().assemble("@0\n" + "NOP\n" * 16)["errors"][0]
    assert format_error(error).startswith("Error at (0,0): Too many instructions")

def test_format_error_without_node():
    error = TisAssembler().assemble("NOP")["errors"][0]
    assert format_error(error) == "Error: Improper file format"
