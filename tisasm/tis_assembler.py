# tisasm/tis_assembler.py
import re
import logging
from tisasm.tis_consts import (
    MAX_INSTRUCTIONS, GRID_WIDTH, SAVE_NODE_TYPE, SOURCE_BITS, DEST_BITS, WORD_BITS,
    IMMEDIATE_BITS, IMMEDIATE_MIN, IMMEDIATE_MAX, LABEL_BITS,
    SAVE_HEADER_PREFIX, MAP_HEADER_PREFIX, SAVE_FORMAT, MAP_FORMAT,
    SOURCE_MAP, DEST_MAP, OPCODES,
    UNKNOWN_FORMAT, MALFORMED_HEADER, DUPLICATE_LABEL, TOO_MANY_INSTRUCTIONS,
    EMPTY_INSTRUCTION, ARGUMENT_COUNT_MISMATCH, INVALID_OPCODE, INVALID_DESTINATION,
    INVALID_SOURCE, IMMEDIATE_OUT_OF_RANGE, UNDEFINED_LABEL, INTERNAL_ERROR,
)

logger = logging.getLogger(__name__)

INTEGER_RE = re.compile(r'^[+-]?[0-9]+$')
SAVE_ID_RE = re.compile(r'^[0-9]+$')
# <<TYPE(x,y)>>, closing marker optional
MAP_HEADER_RE = re.compile(r'^<<([^(]*)\(([^,)]*),([^)]*)\)')


class TisAssembler:
    def __init__(self, collect_all=False, lenient_labels=False):
        self.collect_all = collect_all # Keep going after the first error
        # Lenient: a ':' after '#' is comment text, and label names are trimmed
        self.lenient_labels = lenient_labels
        self.nodes = [] # Node records from the last run (raw lines, cleaned lines, words)
        self.errors = []

    def _add_error(self, kind, message, node=None, line=None, text="", **context):
        """Records a structured error, preventing duplicates for the same location/message."""
        x = node["x"] if node else None
        y = node["y"] if node else None
        node_str = f"({x},{y})" if node else None
        if any(err['node'] == node_str and err['line'] == line and err['message'] == message for err in self.errors):
            return
        logger.debug(f"Adding error: {kind} at {node_str}, line {line}: {message} ('{text}')")
        self.errors.append({
            "kind": kind,
            "x": x,
            "y": y,
            "node": node_str,
            "line": line,
            "message": message,
            "text": text,
            "context": context,
        })

    def _stopped(self):
        """True when fail-fast mode has hit an error."""
        return bool(self.errors) and not self.collect_all

    @staticmethod
    def _prepare_lines(source):
        """Splits text into lines and uppercases them. Accepts a string or a list of lines."""
        if isinstance(source, str):
            lines = source.splitlines()
        else:
            lines = [line.rstrip('\r\n') for line in source]
        return [line.upper() for line in lines]

    # --- Format Detection ---

    def detect_format(self, lines):
        """Picks the input dialect from the first non-empty line. Returns SAVE_FORMAT, MAP_FORMAT or None."""
        for line in lines:
            if not line.strip():
                continue
            if line.startswith(SAVE_HEADER_PREFIX):
                return SAVE_FORMAT
            if line.startswith(MAP_HEADER_PREFIX):
                return MAP_FORMAT
            self._add_error(UNKNOWN_FORMAT, "Improper file format", text=line, token=line)
            return None

        self._add_error(UNKNOWN_FORMAT, "Empty input")
        return None

    # --- Node Separation ---

    def _parse_save_header(self, line):
        """'@<id>' -> node header dict, coordinates taken from the id on a 4-wide grid."""
        id_str = line[len(SAVE_HEADER_PREFIX):].strip()
        if not SAVE_ID_RE.match(id_str):
            self._add_error(MALFORMED_HEADER, f"Malformed node header '{line}'", text=line, header=line)
            return None
        node_id = int(id_str)
        return {"x": node_id % GRID_WIDTH, "y": node_id // GRID_WIDTH, "type": SAVE_NODE_TYPE}

    def _parse_map_header(self, line):
        """'<<TYPE(x,y)>>' -> node header dict."""
        match = MAP_HEADER_RE.match(line)
        if not match:
            self._add_error(MALFORMED_HEADER, f"Malformed node header '{line}'", text=line, header=line)
            return None
        node_type, x_str, y_str = (group.strip() for group in match.groups())
        if not INTEGER_RE.match(x_str) or not INTEGER_RE.match(y_str):
            self._add_error(MALFORMED_HEADER, f"Malformed node coordinates '({x_str},{y_str})' in header '{line}'", text=line, header=line)
            return None
        return {"x": int(x_str), "y": int(y_str), "type": node_type}

    def _separate(self, lines, prefix, parse_header):
        """Splits the flat line list into node records at each header line."""
        nodes = []
        current = None
        for line in lines:
            if line.startswith(prefix):
                header = parse_header(line)
                if header is None:
                    if self._stopped(): return None
                    current = None # Drop the body of a bad header
                    continue
                current = {**header, "lines": []}
                nodes.append(current)
                logger.debug(f"Separator: node ({current['x']},{current['y']}) '{current['type']}'")
            elif current is not None:
                current["lines"].append(line)
            # Anything before the first header is ignored
        return nodes

    def separate_save_format(self, lines):
        return self._separate(lines, SAVE_HEADER_PREFIX, self._parse_save_header)

    def separate_map_format(self, lines):
        return self._separate(lines, MAP_HEADER_PREFIX, self._parse_map_header)

    # --- Sanitizing ---

    def sanitize_node(self, node):
        """
        Strips labels, whitespace and comments from a node's raw lines, dropping lines left empty.
        Returns (instructions, label_map), or (None, None) on error.
        Label indices refer to positions in the returned instruction list.
        """
        instructions = []
        label_map = {}
        failed = False

        for raw in node["lines"]:
            text = raw
            colon = text.find(':')
            comment = text.find('#')
            if self.lenient_labels and comment != -1 and colon > comment:
                colon = -1
            if colon != -1:
                label = text[:colon]
                if self.lenient_labels:
                    label = label.strip()
                if label in label_map:
                    self._add_error(DUPLICATE_LABEL, f"Duplicate label '{label}'", node, len(instructions), raw, label=label)
                    if not self.collect_all: return None, None
                    failed = True
                else:
                    label_map[label] = len(instructions) # Next kept line
                    logger.debug(f"Sanitizer: label '{label}' -> line {label_map[label]} in ({node['x']},{node['y']})")
                text = text[colon + 1:]

            text = text.lstrip()
            text = text.split('#', 1)[0].rstrip()
            if not text:
                continue
            instructions.append(text)

        if len(instructions) > MAX_INSTRUCTIONS:
            self._add_error(TOO_MANY_INSTRUCTIONS,
                            f"Too many instructions ({len(instructions)}, limit {MAX_INSTRUCTIONS})",
                            node, count=len(instructions), limit=MAX_INSTRUCTIONS)
            return None, None

        if failed:
            return None, None
        return instructions, label_map

    # --- Encoding ---

    def _parse_source(self, token, node, line, text):
        """Source operand -> 12-bit field value."""
        if token in SOURCE_MAP:
            return SOURCE_MAP[token]
        if not INTEGER_RE.match(token):
            self._add_error(INVALID_SOURCE, f"Invalid source '{token}' (not a number or register)", node, line, text, token=token)
            return None
        value = int(token)
        if not (IMMEDIATE_MIN <= value <= IMMEDIATE_MAX):
            self._add_error(IMMEDIATE_OUT_OF_RANGE,
                            f"Invalid source '{token}' (immediate out of range {IMMEDIATE_MIN} to {IMMEDIATE_MAX})",
                            node, line, text, token=token, value=value)
            return None
        # Leading 0 bit selects immediate; low 11 bits hold two's complement
        return value & ((1 << IMMEDIATE_BITS) - 1)

    def _parse_destination(self, token, node, line, text):
        """Destination operand -> 5-bit field value."""
        if token not in DEST_MAP:
            self._add_error(INVALID_DESTINATION, f"Invalid destination '{token}'", node, line, text, token=token)
            return None
        return DEST_MAP[token]

    def _resolve_label(self, token, label_map, node, line, text):
        """Jump label -> 5-bit field value (0 followed by the 4-bit line index)."""
        if token not in label_map:
            self._add_error(UNDEFINED_LABEL, f"Label not found '{token}'", node, line, text, label=token)
            return None
        return label_map[token] & ((1 << LABEL_BITS) - 1)

    def encode_instruction(self, text, label_map, node, line):
        """Encodes one cleaned instruction line, returning the 21-bit word as an integer or None on error."""
        tokens = text.replace(',', ' ').split()
        if not tokens:
            self._add_error(EMPTY_INSTRUCTION, "Empty instruction", node, line, text)
            return None

        mnemonic, operands = tokens[0], tokens[1:]
        if mnemonic not in OPCODES:
            self._add_error(INVALID_OPCODE, f"Invalid opcode '{mnemonic}'", node, line, text, token=mnemonic)
            return None

        opcode, operand_kinds = OPCODES[mnemonic]
        if len(operands) != len(operand_kinds):
            detail = "missing" if len(operands) < len(operand_kinds) else "extra"
            prefix = "Missing arguments" if detail == "missing" else "Too many arguments"
            self._add_error(ARGUMENT_COUNT_MISMATCH,
                            f"{prefix} for '{mnemonic}'. Expected {len(operand_kinds)}, got {len(operands)}.",
                            node, line, text, detail=detail, expected=len(operand_kinds), got=len(operands))
            return None

        source, dest = 0, 0
        for kind, token in zip(operand_kinds, operands):
            if kind == "src":
                source = self._parse_source(token, node, line, text)
                if source is None: return None
            elif kind == "dst":
                dest = self._parse_destination(token, node, line, text)
                if dest is None: return None
            elif kind == "label":
                dest = self._resolve_label(token, label_map, node, line, text)
                if dest is None: return None

        # Format: opcode(4) source(12) destination(5)
        word = (opcode << (SOURCE_BITS + DEST_BITS)) | (source << DEST_BITS) | dest
        logger.debug(f"Encoded '{text}' -> {word:0{WORD_BITS}b} ({node['x']},{node['y']}) line {line}")
        return word

    def encode_node(self, node, instructions, label_map):
        """Encodes every instruction of a node. Returns the list of words or None on error."""
        words = []
        failed = False
        for line, text in enumerate(instructions):
            word = self.encode_instruction(text, label_map, node, line)
            if word is None:
                if not self.collect_all: return None
                failed = True
                continue
            words.append(word)
        return None if failed else words

    # --- Result Assembly ---

    @staticmethod
    def _format_node(node):
        return {
            "x": node["x"],
            "y": node["y"],
            "type": node["type"],
            "header": f"{node['x']},{node['y']},{node['type']}",
            "words": [
                {
                    "index": i,
                    "bin": f"{word:0{WORD_BITS}b}",
                    "hex": f"0x{word:06x}",
                    "dec": str(word),
                }
                for i, word in enumerate(node["words"])
            ],
        }

    def assemble(self, source):
        """ Main method to assemble TIS-11 code. Returns dict with 'nodes' and 'errors'. """
        logger.info("Starting assembly process...")
        self.nodes = []
        self.errors = []

        try:
            lines = self._prepare_lines(source)
            input_format = self.detect_format(lines)

            if input_format is not None:
                logger.debug(f"--- Detected {input_format} format, separating nodes ---")
                if input_format == SAVE_FORMAT:
                    nodes = self.separate_save_format(lines)
                else:
                    nodes = self.separate_map_format(lines)
                self.nodes = nodes or []

            for node in self.nodes:
                if self._stopped(): break

                instructions, label_map = self.sanitize_node(node)
                if instructions is None: continue
                node["instructions"] = instructions

                words = self.encode_node(node, instructions, label_map)
                if words is None: continue
                node["words"] = words

        except Exception as e:
            logger.error(f"Unexpected exception during assembly: {e}", exc_info=True)
            self._add_error(INTERNAL_ERROR, f"An unexpected internal error occurred during assembly: {e}")

        if self.errors:
            logger.warning(f"Assembly failed with {len(self.errors)} error(s).")
            return {"nodes": [], "errors": self.errors}

        logger.info(f"Assembly successful. {len(self.nodes)} node(s).")
        return {"nodes": [self._format_node(node) for node in self.nodes], "errors": []}
