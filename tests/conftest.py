import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from merkle_airdrop.leaf import normalize_recipient
from merkle_airdrop.program import AirdropProgram
from merkle_airdrop.tree import Allocation, build_tree_from_allocations

A = normalize_recipient("0x" + "a1" * 20)
B = normalize_recipient("0x" + "b2" * 20)
C = normalize_recipient("0x" + "c3" * 20)
D = normalize_recipient("0x" + "d4" * 20)
OPERATOR = normalize_recipient("0x" + "0e" * 20)
OUTSIDER = normalize_recipient("0x" + "99" * 20)


def make_allocations(pairs):
    return [Allocation(index=i, account=account, amount=amount) for i, (account, amount) in enumerate(pairs)]


@pytest.fixture
def four_allocations():
    return make_allocations([(A, 100), (B, 200), (C, 300), (D, 400)])


@pytest.fixture
def four_tree(four_allocations):
    return build_tree_from_allocations(four_allocations)


@pytest.fixture
def three_allocations():
    return make_allocations([(A, 100), (B, 200), (C, 300)])


@pytest.fixture
def program():
    # fresh program per test, operator pre-funded
    prog = AirdropProgram()
    prog.accounts.credit(OPERATOR, 10_000)
    yield prog
    # tokens only ever move between accounts
    assert sum(balance for _, balance in prog.accounts.items()) == 10_000


@pytest.fixture
def funded(program, four_tree):
    """Program with the four-recipient airdrop registered with a pool of 1000."""
    program.register_commitment(OPERATOR, four_tree.root, 1000)
    return program


class FakeResponse:

    def __init__(self, status_code, payload=None, reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.reason = reason

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Replays queued responses (or exceptions) and records requested URLs."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.urls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.urls.append(url)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True
