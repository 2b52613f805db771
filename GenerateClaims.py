#!/usr/bin/env python3
"""
GenerateClaims.py

Build the merkle commitment for an airdrop from a CSV of allocations and write
the airdrop file (root, flat tree, ordered leaves, per-wallet claims with
proofs) consumed by the proof service and the ContractTesting scripts.

CSV schema
==========
Header must include:
    wallet,amount
Any other columns are kept per wallet under "csv" in the output for auditing.

Rows with amount == 0 are skipped. Leaf indices are contiguous among the
included rows (0..n-1), in CSV order.

Usage
=====
    python GenerateClaims.py <input_csv> <output_json> <unit>

Example:
    python GenerateClaims.py allocations.csv airdrop_jsons/airdrop.json eth
"""

import csv
import sys
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Dict, List

from merkle_airdrop.errors import InputValidationError
from merkle_airdrop.leaf import digest_hex, normalize_recipient
from merkle_airdrop.storage import write_airdrop_json
from merkle_airdrop.tree import Allocation, build_tree_from_allocations

getcontext().prec = 80  # high precision for Decimal math

WEI_PER_ETH = Decimal("1000000000000000000")

ADDRESS_COL = "wallet"
AMOUNT_COL = "amount"


def parse_amount_to_wei(value: str, unit: str) -> int:
    """
    Convert an amount to integer wei.
    - unit="eth": accepts decimals up to 18 places, converts exactly to wei
    - unit="wei": must be an integer string
    """
    v = (value or "").strip()
    if unit == "wei":
        if v.startswith("+"):
            v = v[1:]
        if not v.isdigit():
            raise ValueError(f"amount must be an integer wei string when unit=wei (got: {value!r})")
        return int(v)

    # unit == "eth"
    try:
        d = Decimal(v)
    except InvalidOperation as e:
        raise ValueError(f"amount is not a valid decimal ETH amount: {value!r}") from e

    if d < 0:
        raise ValueError(f"amount cannot be negative (got: {value!r})")

    # Enforce <= 18 decimal places to avoid silent rounding
    exp = -d.as_tuple().exponent if d.as_tuple().exponent < 0 else 0
    if exp > 18:
        raise ValueError(f"amount has more than 18 decimals (got {exp}): {value!r}")

    wei = d * WEI_PER_ETH
    if wei != wei.to_integral_value():
        raise ValueError(f"amount cannot be represented exactly in wei: {value!r}")
    return int(wei)


def read_allocations(input_csv: str, unit: str):
    """
    Read and validate the CSV.

    Returns (allocations, metadata, input_rows, skipped_zero). Raises
    SystemExit with a row-numbered message on the first bad row.
    """
    rows: List[Dict[str, str]] = []
    try:
        with open(input_csv, "r", newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                raise SystemExit("Input CSV appears to have no header row.")
            for col in (ADDRESS_COL, AMOUNT_COL):
                if col not in reader.fieldnames:
                    raise SystemExit(f"Missing required column {col!r} in CSV header.")
            for r in reader:
                rows.append(r)
    except FileNotFoundError:
        raise SystemExit(f"Input CSV not found: {input_csv!r}")

    if not rows:
        raise SystemExit("Input CSV has no data rows.")

    allocations: List[Allocation] = []
    metadata: Dict[str, Dict[str, Any]] = {}
    skipped_zero = 0

    for row_idx, r in enumerate(rows):
        addr_raw = (r.get(ADDRESS_COL) or "").strip()
        if not addr_raw:
            raise SystemExit(f"Row {row_idx+1}: empty wallet address.")

        try:
            account = normalize_recipient(addr_raw)
        except InputValidationError as e:
            raise SystemExit(f"Row {row_idx+1}: invalid address {addr_raw!r}: {e}")

        amt_raw = (r.get(AMOUNT_COL) or "").strip()
        if not amt_raw:
            raise SystemExit(f"Row {row_idx+1}: empty amount.")

        try:
            amount_wei = parse_amount_to_wei(amt_raw, unit)
        except ValueError as e:
            raise SystemExit(f"Row {row_idx+1}: bad amount {amt_raw!r}: {e}")

        if amount_wei == 0:
            skipped_zero += 1
            continue

        # One receipt per (root, wallet): a second row could never be claimed.
        if account in metadata:
            raise SystemExit(f"Row {row_idx+1}: duplicate wallet {account}.")

        allocations.append(Allocation(index=len(allocations), account=account, amount=amount_wei))
        metadata[account] = dict(r)

    if not allocations:
        raise SystemExit("All rows were skipped (no wallets with non-zero amount).")

    return allocations, metadata, len(rows), skipped_zero


def usage() -> str:
    return (
        "Usage:\n"
        "  python GenerateClaims.py <input_csv> <output_json> <unit>\n\n"
        "Arguments (positional):\n"
        "  <input_csv>   Path to input CSV\n"
        "  <output_json> Output JSON path (e.g. airdrop_jsons/airdrop.json)\n"
        "  <unit>        'eth' or 'wei' (unit of amount in CSV)\n\n"
        "CSV schema expected (header must include these columns):\n"
        f"  {ADDRESS_COL}, {AMOUNT_COL}, ...\n"
        "Note:\n"
        "  Rows with amount == 0 wei are skipped.\n"
    )


def main() -> None:
    if len(sys.argv) != 4:
        print(usage(), file=sys.stderr)
        raise SystemExit(2)

    input_csv = sys.argv[1]
    output_json = sys.argv[2]
    unit = sys.argv[3].strip().lower()

    if unit not in ("eth", "wei"):
        print("Error: <unit> must be 'eth' or 'wei'\n", file=sys.stderr)
        print(usage(), file=sys.stderr)
        raise SystemExit(2)

    allocations, metadata, input_rows, skipped_zero = read_allocations(input_csv, unit)

    tree = build_tree_from_allocations(allocations)
    write_airdrop_json(output_json, tree, allocations, metadata)

    print("merkleRoot:", digest_hex(tree.root))
    print("input rows:", input_rows)
    print("included wallets:", len(allocations))
    print("skipped zero-amount wallets:", skipped_zero)
    print("tree height:", tree.height)
    print("total amount (wei):", sum(a.amount for a in allocations))
    print("wrote:", output_json)


if __name__ == "__main__":
    main()
