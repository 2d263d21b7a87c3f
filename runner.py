"""
runner.py
High-level pipeline runner. Compiles a polynomial into an R1CS and exports
the system as a label-keyed JSON document (see r1cs_utils.system_to_dict).

Writes the export atomically and prints a compact summary.
"""

import logging
from pathlib import Path
from typing import Dict, Any

from config import DEFAULT_CONFIG, cse_mode_from
from poly_compiler import PolynomialCompiler
from r1cs_system import R1CSSystem
from r1cs_utils import linear_dict_to_str, system_to_dict
from utils import write_json_atomic

logger = logging.getLogger("poly2r1cs.runner")


def run_pipeline(source: str, expected_result: int, out_dir: str = "out", config: Dict[str, Any] = None,
                 quiet: bool = False) -> R1CSSystem:
    """
    Run the compile + export pipeline and return the compiled system.

    :param source: polynomial source text
    :param expected_result: value the polynomial must evaluate to
    :param out_dir: directory to write outputs
    :param config: configuration dictionary
    :param quiet: if True, suppress the printed summary
    """
    cfg = DEFAULT_CONFIG.copy()
    if config:
        cfg.update(config)

    out_dir = Path(out_dir)

    logger.info("compiling %r (expected result %d)", source, expected_result)
    compiler = PolynomialCompiler(cse_mode=cse_mode_from(cfg))
    system = compiler.compile(source, expected_result)

    r1cs = system_to_dict(system,
                          one_symbol=cfg.get("one_symbol", "ONE"),
                          anonymous_prefix=cfg.get("anonymous_prefix", "u_"))
    r1cs["meta"]["source"] = source
    r1cs["meta"]["expected_result"] = expected_result

    out_path = out_dir / cfg.get("export_r1cs_filename", "r1cs.json")
    write_json_atomic(str(out_path), r1cs)
    logger.info("wrote R1CS to %s", out_path)

    if not quiet:
        print(f"[runner] Wrote R1CS to: {out_path}")
        print_summary(r1cs, cfg)
    return system


def print_summary(r1cs: Dict[str, Any], cfg: Dict[str, Any]) -> None:
    """
    Print a compact summary of variables and constraints.
    """
    meta = r1cs.get("meta", {})
    top_n = cfg.get("max_top_constraints", 50)

    print("=== R1CS Summary ===")
    print(f"Inputs: {meta.get('input_size', 0)}")
    print(f"Variables: {len(r1cs.get('variables', {}))}")
    print(f"Constraints: {len(r1cs.get('constraints', []))}")
    print()
    print("First constraints (up to {}):".format(top_n))
    for i, c in enumerate(r1cs.get("constraints", [])[:top_n]):
        A = linear_dict_to_str(c["A"])
        B = linear_dict_to_str(c["B"])
        C = linear_dict_to_str(c["C"])
        print(f"  [{i}] {c['kind']}: ({A}) * ({B}) = ({C})")
    print("====================")
