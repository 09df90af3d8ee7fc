"""
x86 decoder that drives radare2 through r2pipe.
The code buffer is written to a scratch file and mapped at the base address.
"""
import os
import tempfile
from typing import Dict, List, Optional

from core.ir import Instruction

try:
    import r2pipe
    _R2_AVAILABLE = True
except ImportError:
    _R2_AVAILABLE = False


# radare2 op types for jumps; the u/r/i/m prefixes mark indirect forms
_DIRECT_JUMPS = {"jmp", "cjmp"}
_UNCONDITIONAL_JUMPS = {"jmp", "ujmp", "rjmp", "ijmp", "irjmp", "mjmp"}
_CONDITIONAL_JUMPS = {"cjmp", "ucjmp", "rcjmp", "mcjmp"}


def r2_available() -> bool:
    return _R2_AVAILABLE


def parse_int(value, default=None):
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


class R2Decoder:
    """
    Linear sweep through radare2's `pDj` (disassemble N bytes as JSON).
    Stops at the first entry radare2 marks invalid.
    """

    name = "r2"

    def __init__(self, arch: str = "x86", mode: str = "64"):
        self.arch = arch
        self.bits = str(mode)

    def decode(self, data: bytes, base_address: int) -> Optional[List[Instruction]]:
        if not _R2_AVAILABLE:
            print("[Decoder] r2pipe is not installed. Install radare2 and r2pipe to use this backend.")
            return None
        if not data:
            return None

        fd, path = tempfile.mkstemp(suffix=".bin")
        r2 = None
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(bytes(data))
            r2 = r2pipe.open(
                path,
                flags=["-2", "-a", self.arch, "-b", self.bits, "-m", hex(base_address)],
            )
            entries = r2.cmdj(f"pDj {len(data)} @ {base_address}")
        except Exception as e:
            print(f"[Decoder] radare2 failed: {e}")
            return None
        finally:
            if r2 is not None:
                try:
                    r2.quit()
                except Exception as e:
                    print(f"[Decoder] Warning: radare2 did not quit cleanly: {e}")
            os.unlink(path)

        if not isinstance(entries, list):
            print("[Decoder] radare2 returned no disassembly.")
            return None
        return self.convert(entries) or None

    def convert(self, entries: List[Dict]) -> List[Instruction]:
        out: List[Instruction] = []
        for entry in entries:
            if not isinstance(entry, dict):
                break
            op_type = entry.get("type", "")
            addr = parse_int(entry.get("offset"))
            if addr is None:
                addr = parse_int(entry.get("addr"))
            size = parse_int(entry.get("size"), 0)
            if op_type == "invalid" or addr is None or size <= 0:
                break

            text = (entry.get("opcode") or entry.get("disasm") or "").strip()
            mnemonic, _, op_str = text.partition(" ")

            is_jump = op_type in _UNCONDITIONAL_JUMPS or op_type in _CONDITIONAL_JUMPS
            target = parse_int(entry.get("jump")) if op_type in _DIRECT_JUMPS else None
            out.append(
                Instruction(
                    address=addr,
                    size=size,
                    mnemonic=mnemonic,
                    op_str=op_str.strip(),
                    is_jump=is_jump,
                    is_unconditional=op_type in _UNCONDITIONAL_JUMPS,
                    target=target,
                )
            )
        return out
