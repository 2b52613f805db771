import json

import pytest

from merkle_airdrop.errors import (
    AlreadyClaimedError,
    CorruptAirdropFileError,
    InvalidRecipientError,
    UnknownRecipientError,
)
from merkle_airdrop.leaf import digest_hex, to_digest
from merkle_airdrop.storage import (
    dump_airdrop,
    dump_program,
    load_airdrop_json,
    load_program,
    parse_airdrop,
    restore_program,
    save_program,
    write_airdrop_json,
)
from merkle_airdrop.tree import prove_leaf, verify_proof

from conftest import B, C, OPERATOR, OUTSIDER


def test_dump_contains_tree_leaves_and_claims(four_tree, four_allocations):
    out = dump_airdrop(four_tree, four_allocations)

    assert out["merkleRoot"] == digest_hex(four_tree.root)
    assert out["tree"][1] == out["merkleRoot"]
    assert len(out["tree"]) == 8
    assert [leaf["index"] for leaf in out["leaves"]] == ["0", "1", "2", "3"]
    assert out["claims"][B] == {
        "index": "1",
        "amount": "200",
        "proof": [digest_hex(p) for p in prove_leaf(four_tree, 1)],
    }
    assert out["stats"]["totalAmount"] == "1000"
    assert out["stats"]["treeHeight"] == 2


def test_metadata_is_attached_per_claim(four_tree, four_allocations):
    out = dump_airdrop(four_tree, four_allocations, {B: {"wallet": B, "amount": "200", "note": "x"}})
    assert out["claims"][B]["csv"]["note"] == "x"
    assert "csv" not in out["claims"][C]


def test_written_file_reloads_to_the_same_tree(tmp_path, four_tree, four_allocations):
    path = tmp_path / "airdrop.json"
    write_airdrop_json(str(path), four_tree, four_allocations)

    airdrop = load_airdrop_json(str(path))
    assert airdrop.root == four_tree.root
    assert airdrop.tree == four_tree
    assert airdrop.allocations == four_allocations
    assert airdrop.total_amount == 1000


def test_reloaded_file_regenerates_valid_proofs(tmp_path, four_tree, four_allocations):
    path = tmp_path / "airdrop.json"
    write_airdrop_json(str(path), four_tree, four_allocations)
    airdrop = load_airdrop_json(str(path))

    proof = airdrop.proof_for(C.lower())
    assert proof == prove_leaf(four_tree, 2)
    assert verify_proof(four_tree.leaves[2], proof, airdrop.root, 2)


def test_unknown_recipient(four_tree, four_allocations):
    airdrop = parse_airdrop(dump_airdrop(four_tree, four_allocations))
    with pytest.raises(UnknownRecipientError):
        airdrop.claim_for(OUTSIDER)
    with pytest.raises(UnknownRecipientError):
        airdrop.claim_for("not-an-address")


def test_edited_amount_is_detected(four_tree, four_allocations):
    data = dump_airdrop(four_tree, four_allocations)
    data["leaves"][1]["amount"] = "2000"
    with pytest.raises(CorruptAirdropFileError):
        parse_airdrop(data)


def test_edited_tree_node_is_detected(four_tree, four_allocations):
    data = dump_airdrop(four_tree, four_allocations)
    data["tree"][3] = digest_hex(b"\x11" * 32)
    with pytest.raises(CorruptAirdropFileError):
        parse_airdrop(data)


def test_reordered_leaves_are_detected(four_tree, four_allocations):
    data = dump_airdrop(four_tree, four_allocations)
    data["leaves"][0], data["leaves"][1] = data["leaves"][1], data["leaves"][0]
    with pytest.raises(CorruptAirdropFileError):
        parse_airdrop(data)


@pytest.mark.parametrize("mutate", [
    lambda d: d.pop("merkleRoot"),
    lambda d: d.__setitem__("tree", "nope"),
    lambda d: d["leaves"][0].__setitem__("account", "0x12"),
    lambda d: d["leaves"][0].__setitem__("amount", "0"),
])
def test_malformed_fields(four_tree, four_allocations, mutate):
    data = dump_airdrop(four_tree, four_allocations)
    mutate(data)
    with pytest.raises(CorruptAirdropFileError):
        parse_airdrop(data)


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptAirdropFileError):
        load_airdrop_json(str(path))


def test_program_state_round_trip(tmp_path, funded, four_tree):
    funded.claim(four_tree.root, B, 200, 1, prove_leaf(four_tree, 1))

    path = tmp_path / "state.json"
    save_program(funded, str(path))
    restored = load_program(str(path))

    assert restored.balance_of(OPERATOR) == 9000
    assert restored.balance_of(B) == 200
    assert restored.holding_balance(four_tree.root) == 800
    assert restored.commitment(four_tree.root) == funded.commitment(four_tree.root)
    assert restored.is_claimed(four_tree.root, B)

    with pytest.raises(AlreadyClaimedError):
        restored.claim(four_tree.root, B, 200, 1, prove_leaf(four_tree, 1))

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert to_digest(saved["commitments"][0]["root"]) == four_tree.root


def test_hand_edited_state_is_normalized(tmp_path, funded, four_tree):
    funded.claim(four_tree.root, B, 200, 1, prove_leaf(four_tree, 1))

    data = dump_program(funded)
    data["receipts"][0]["recipient"] = B.lower()
    data["commitments"][0]["authority"] = OPERATOR.lower()
    data["accounts"] = {k.lower(): v for k, v in data["accounts"].items()}

    restored = restore_program(data)
    assert restored.is_claimed(four_tree.root, B)
    assert restored.commitment(four_tree.root).authority == OPERATOR
    assert restored.balance_of(B) == 200
    assert restored.holding_balance(four_tree.root) == 800
    with pytest.raises(AlreadyClaimedError):
        restored.claim(four_tree.root, B, 200, 1, prove_leaf(four_tree, 1))


def test_state_with_bad_recipient_is_refused(funded, four_tree):
    funded.claim(four_tree.root, B, 200, 1, prove_leaf(four_tree, 1))
    data = dump_program(funded)
    data["receipts"][0]["recipient"] = "someone"
    with pytest.raises(InvalidRecipientError):
        restore_program(data)
