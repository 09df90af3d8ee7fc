"""
x86 decoder backed by the Capstone disassembly engine.
"""
from typing import List, Optional

import capstone
from capstone import x86

from core.ir import Instruction

_MODES = {
    "16": (capstone.CS_MODE_16, 16),
    "32": (capstone.CS_MODE_32, 32),
    "64": (capstone.CS_MODE_64, 64),
}

_UNCONDITIONAL = {x86.X86_INS_JMP, x86.X86_INS_LJMP}


class CapstoneDecoder:
    """
    Linear-sweep disassembly of a code buffer.
    Decoding stops at the first byte sequence Capstone cannot decode.
    """

    name = "capstone"

    def __init__(self, arch: str = "x86", mode: str = "64"):
        if arch != "x86":
            raise ValueError(f"unsupported architecture: {arch}")
        if str(mode) not in _MODES:
            raise ValueError(f"unsupported x86 mode: {mode}")
        self.arch = arch
        self.mode, self.bits = _MODES[str(mode)]

    def decode(self, data: bytes, base_address: int) -> Optional[List[Instruction]]:
        if not data:
            return None
        try:
            md = capstone.Cs(capstone.CS_ARCH_X86, self.mode)
            md.detail = True
            out = [self._convert(insn) for insn in md.disasm(bytes(data), base_address)]
        except capstone.CsError as e:
            print(f"[Decoder] Capstone error: {e}")
            return None
        return out or None

    def _convert(self, insn) -> Instruction:
        is_jump = capstone.CS_GRP_JUMP in insn.groups
        target = None
        if is_jump:
            ops = insn.operands
            if len(ops) == 1 and ops[0].type == x86.X86_OP_IMM:
                target = ops[0].imm & ((1 << self.bits) - 1)
        return Instruction(
            address=insn.address,
            size=insn.size,
            mnemonic=insn.mnemonic,
            op_str=insn.op_str,
            is_jump=is_jump,
            is_unconditional=is_jump and insn.id in _UNCONDITIONAL,
            target=target,
        )
