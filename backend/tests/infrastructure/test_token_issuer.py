"""Token Issuer — minted units stay locked until release."""

import pytest

from crowdsale.core.errors import InsufficientUnitsError, InvalidAmountError, TokenLockedError
from crowdsale.infrastructure.token_issuer import InMemoryTokenIssuer


def test_new_issuer_has_zero_supply():
    issuer = InMemoryTokenIssuer()
    assert issuer.total_supply == 0
    assert issuer.balance_of("alice") == 0
    assert not issuer.released


def test_mint_accumulates_balance_and_supply():
    issuer = InMemoryTokenIssuer()
    issuer.mint("alice", 4)
    issuer.mint("alice", 3)
    issuer.mint("bob", 7)
    assert issuer.balance_of("alice") == 7
    assert issuer.total_supply == 14


def test_mint_rejects_negative():
    with pytest.raises(InvalidAmountError):
        InMemoryTokenIssuer().mint("alice", -1)


def test_transfer_locked_until_release():
    issuer = InMemoryTokenIssuer()
    issuer.mint("alice", 5)
    with pytest.raises(TokenLockedError):
        issuer.transfer("alice", "bob", 1)
    issuer.release()
    issuer.transfer("alice", "bob", 2)
    assert issuer.balance_of("alice") == 3
    assert issuer.balance_of("bob") == 2
    assert issuer.total_supply == 5


def test_transfer_beyond_balance_rejected():
    issuer = InMemoryTokenIssuer()
    issuer.mint("alice", 1)
    issuer.release()
    with pytest.raises(InsufficientUnitsError):
        issuer.transfer("alice", "bob", 2)
    assert issuer.balance_of("alice") == 1


def test_snapshot_restores_balances_and_release_flag():
    issuer = InMemoryTokenIssuer()
    issuer.mint("alice", 9)
    issuer.release()
    restored = InMemoryTokenIssuer.from_snapshot(issuer.to_snapshot())
    assert restored.balance_of("alice") == 9
    assert restored.total_supply == 9
    assert restored.released
