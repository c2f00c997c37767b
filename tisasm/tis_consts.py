# tisasm/tis_consts.py

# --- Hardware Limits ---
MAX_INSTRUCTIONS = 15   # Per-node instruction memory
GRID_WIDTH = 4          # Save files number nodes row-major on a 4-wide grid
SAVE_NODE_TYPE = "NODE T-21"

# --- Field Widths (opcode | source | destination) ---
OPCODE_BITS = 4
SOURCE_BITS = 12
DEST_BITS = 5
WORD_BITS = OPCODE_BITS + SOURCE_BITS + DEST_BITS # 21

IMMEDIATE_BITS = SOURCE_BITS - 1 # Leading 0 selects immediate
IMMEDIATE_MIN = -(1 << (IMMEDIATE_BITS - 1)) # -1024
IMMEDIATE_MAX = (1 << (IMMEDIATE_BITS - 1)) - 1 # 1023
LABEL_BITS = DEST_BITS - 1

# --- Header Markers ---
SAVE_HEADER_PREFIX = "@"
MAP_HEADER_PREFIX = "<<"
SAVE_FORMAT = "save"
MAP_FORMAT = "map"

# --- Register/Port Operands ---
# Source field: 1 = register/port, then 1 bit class (0 acc-class, 1 port-class), 10 bit index
SOURCE_MAP = {
    "NIL":   0b100000000000,
    "ACC":   0b100000000001,
    "LEFT":  0b110000000000,
    "RIGHT": 0b110000000001,
    "UP":    0b110000000010,
    "DOWN":  0b110000000011,
    "ANY":   0b110000000100,
    "LAST":  0b110000000101,
}

# Destination field: 1 = register/port, then 1 bit class, 3 bit index
DEST_MAP = {
    "NIL":   0b10000,
    "ACC":   0b10001,
    "LEFT":  0b11000,
    "RIGHT": 0b11001,
    "UP":    0b11010,
    "DOWN":  0b11011,
    "ANY":   0b11100,
    "LAST":  0b11101,
}

# Reverse maps for disassembler
SOURCE_MAP_REV = {v: k for k, v in SOURCE_MAP.items()}
DEST_MAP_REV = {v: k for k, v in DEST_MAP.items()}

# --- Opcode Table ---
# mnemonic -> (opcode bits, operand kinds in source order)
# src: source field, dst: destination field, label: jump target in destination field
OPCODES = {
    "NOP": (0b0000, []),
    "MOV": (0b0001, ["src", "dst"]),
    "SWP": (0b0010, []),
    "SAV": (0b0011, []),
    "ADD": (0b0100, ["src"]),
    "SUB": (0b0101, ["src"]),
    "NEG": (0b0110, []),
    "JMP": (0b1000, ["label"]),
    "JEZ": (0b1001, ["label"]),
    "JNZ": (0b1010, ["label"]),
    "JGZ": (0b1011, ["label"]),
    "JLZ": (0b1100, ["label"]),
    "JRO": (0b1101, ["src"]),
    "HCF": (0b1111, []),
}

OPCODE_MAP_REV = {bits: name for name, (bits, _) in OPCODES.items()}

# --- Error Kinds ---
UNKNOWN_FORMAT = "UnknownFormat"
MALFORMED_HEADER = "MalformedHeader"
DUPLICATE_LABEL = "DuplicateLabel"
TOO_MANY_INSTRUCTIONS = "TooManyInstructions"
EMPTY_INSTRUCTION = "EmptyInstruction"
ARGUMENT_COUNT_MISMATCH = "ArgumentCountMismatch"
INVALID_OPCODE = "InvalidOpcode"
INVALID_DESTINATION = "InvalidDestination"
INVALID_SOURCE = "InvalidSource"
IMMEDIATE_OUT_OF_RANGE = "ImmediateOutOfRange"
UNDEFINED_LABEL = "UndefinedLabel"
INTERNAL_ERROR = "InternalError"
