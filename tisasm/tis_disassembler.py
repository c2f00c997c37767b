# tisasm/tis_disassembler.py
from tisasm.tis_consts import (
    SOURCE_BITS, DEST_BITS, WORD_BITS, IMMEDIATE_BITS, LABEL_BITS,
    SOURCE_MAP_REV, DEST_MAP_REV, OPCODE_MAP_REV, OPCODES,
)
import re
import logging

logger = logging.getLogger(__name__)

BINARY_WORD_RE = re.compile(r'^[01]{1,%d}$' % WORD_BITS)


class TisDisassembler:
    def __init__(self):
        self.errors = [] # Store errors encountered during disassembly

    def _sign_extend_imm(self, imm, bits=IMMEDIATE_BITS):
        """ Sign extend a 'bits'-bit immediate value represented as an integer. """
        sign_bit = 1 << (bits - 1)
        if (imm & sign_bit) != 0:
            return imm - (1 << bits)
        return imm

    def _decode_source(self, field):
        """12-bit source field -> register/port name or signed immediate text. None if reserved."""
        if field & (1 << (SOURCE_BITS - 1)): # Register/port
            return SOURCE_MAP_REV.get(field)
        return str(self._sign_extend_imm(field & ((1 << IMMEDIATE_BITS) - 1)))

    @staticmethod
    def jump_target(word):
        """Line index a jump word targets, or None if the word is not a jump."""
        mnemonic = OPCODE_MAP_REV.get((word >> (SOURCE_BITS + DEST_BITS)) & 0xF)
        if mnemonic is None or OPCODES[mnemonic][1] != ["label"]:
            return None
        return word & ((1 << LABEL_BITS) - 1)

    def disassemble_word(self, word):
        """ Disassembles a single 21-bit word. self.errors holds only this word's errors afterwards. """
        self.errors = [] # Clear errors for this specific word

        if not isinstance(word, int) or not (0 <= word < (1 << WORD_BITS)):
            self.errors.append({"message": f"Invalid machine word, expected {WORD_BITS}-bit integer"})
            return "Error: Invalid input"

        opcode = (word >> (SOURCE_BITS + DEST_BITS)) & 0xF
        source = (word >> DEST_BITS) & ((1 << SOURCE_BITS) - 1)
        dest = word & ((1 << DEST_BITS) - 1)

        mnemonic = OPCODE_MAP_REV.get(opcode)
        if mnemonic is None:
            self.errors.append({"message": f"Unknown opcode 0b{opcode:04b}"})
            return f"Unknown Instruction (opcode=0b{opcode:04b})"

        operands = []
        for kind in OPCODES[mnemonic][1]:
            if kind == "src":
                name = self._decode_source(source)
                if name is None:
                    self.errors.append({"message": f"Reserved source field 0b{source:012b}"})
                    return f"{mnemonic} ?"
                operands.append(name)
            elif kind == "dst":
                name = DEST_MAP_REV.get(dest)
                if name is None:
                    self.errors.append({"message": f"Reserved destination field 0b{dest:05b}"})
                    return f"{mnemonic} ?"
                operands.append(name)
            elif kind == "label":
                if dest >> LABEL_BITS:
                    self.errors.append({"message": f"Jump target field 0b{dest:05b} has register bit set"})
                    return f"{mnemonic} ?"
                operands.append(f"L{dest}")

        return " ".join([mnemonic] + operands)

    def disassemble(self, nodes):
        """
        Main method to disassemble nodes given as [{"header": str, "words": [binary str, ...]}].
        Returns dict with 'nodes' (header + assembly text) and 'errors'.
        """
        errors = []
        result_nodes = []

        for node in nodes:
            header = node.get("header", "")
            words = []
            for i, bin_str in enumerate(node.get("words", [])):
                bin_str = str(bin_str).strip()
                if not BINARY_WORD_RE.match(bin_str):
                    errors.append({"node": header, "line": i, "message": f"Invalid binary word: '{bin_str}'"})
                    words.append(None)
                    continue
                words.append(int(bin_str, 2))

            targets = {self.jump_target(w) for w in words if w is not None} - {None}

            assembly_lines = []
            for i, word in enumerate(words):
                if word is None:
                    text = f"Error line {i}: Invalid binary input"
                else:
                    text = self.disassemble_word(word)
                    for err in self.errors:
                        errors.append({**err, "node": header, "line": i})
                prefix = f"L{i}: " if i in targets else ""
                assembly_lines.append(prefix + text)

            # Trailing jump target past the last instruction
            for target in sorted(t for t in targets if t >= len(words)):
                logger.debug(f"Jump target L{target} lies past the end of node '{header}'")
                assembly_lines.append(f"L{target}:")

            result_nodes.append({"header": header, "assembly": "\n".join(assembly_lines)})

        self.errors = errors
        if errors:
            logger.warning(f"Disassembly completed with {len(errors)} error(s).")
        return {"nodes": result_nodes, "errors": errors}
