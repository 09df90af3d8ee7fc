# decoders - turn raw code bytes into Instruction records
from typing import Any, Dict, List, Optional, Protocol

from core.ir import Instruction
from decoders.capstone_decoder import CapstoneDecoder
from decoders.r2_decoder import R2Decoder, r2_available


class Decoder(Protocol):
    name: str

    def decode(self, data: bytes, base_address: int) -> Optional[List[Instruction]]:
        ...


def create_decoder(config: Dict[str, Any]) -> Decoder:
    """
    Factory: returns the configured backend, falling back to Capstone
    when radare2 is requested but r2pipe is missing, and to Capstone
    x86-64 when the configured arch/mode is not supported.
    """
    cfg = config.get("decoder", {})
    backend = str(cfg.get("backend", "capstone")).lower()
    arch = cfg.get("arch", "x86")
    mode = str(cfg.get("mode", "64"))

    if backend in {"r2", "radare2"}:
        if r2_available():
            return R2Decoder(arch, mode)
        print("[Decoder] r2pipe unavailable - using Capstone.")
    elif backend != "capstone":
        print(f"[Decoder] Unknown backend '{backend}' - using Capstone.")
    try:
        return CapstoneDecoder(arch, mode)
    except ValueError as e:
        print(f"[Decoder] {e} - using Capstone x86-64.")
        return CapstoneDecoder()


__all__ = [
    "Decoder",
    "CapstoneDecoder",
    "R2Decoder",
    "create_decoder",
]
