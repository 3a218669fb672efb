"""
Unit tests for AccrualService.

Tests deposit validation, boost determination, time-gated withdrawal
and at-most-once retirement.
"""

import pytest
import pytest_asyncio

from accrual.config.settings import settings
from accrual.exceptions import (
    InvalidAccountError,
    InvalidAmountError,
    InvalidLockUpSelectionError,
    InvalidTimestampError,
    LockUpNotElapsedError,
    NoBalanceError,
    RateNotConfiguredError,
    TransferFailedError,
)
from accrual.models.enums import DepositStatus, TransferType
from accrual.repositories.transfer_repository import TransferRepository
from accrual.services.accrual_service import AccrualService
from accrual.services.rate_policy import RatePolicy, RateTable
from accrual.services.token_service import SqlToken
from accrual.utils.record_id import generate_record_id
from tests.conftest import (
    ALICE,
    BOB,
    CUSTODY,
    FORTY_FIVE_DAYS,
    GENESIS,
    ONE_HUNDRED_EIGHTY_DAYS,
    ONE_HUNDRED_TOKENS,
    ONE_TOKEN,
)


class TestDepositValidation:
    """Tests for deposit preconditions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("short,long", [(False, False), (True, True)])
    async def test_must_choose_exactly_one_lock_up(
        self,
        accrual_service,
        give_tokens,
        usdt,
        short,
        long,
    ):
        """Zero or two lock-up flags are rejected before anything moves."""
        await give_tokens(ALICE)

        with pytest.raises(
            InvalidLockUpSelectionError, match="Must be one or the other"
        ):
            await accrual_service.deposit(
                ALICE, ONE_HUNDRED_TOKENS, short, long, now=GENESIS
            )

        assert await accrual_service.get_user_deposits(ALICE) == []
        assert await usdt.balance_of(ALICE) == ONE_HUNDRED_TOKENS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1])
    async def test_amount_must_be_positive(self, accrual_service, amount):
        """Non-positive amounts are rejected."""
        with pytest.raises(InvalidAmountError):
            await accrual_service.deposit(ALICE, amount, True, False, now=GENESIS)

    @pytest.mark.asyncio
    async def test_invalid_account_rejected(self, accrual_service):
        """Malformed depositor address is rejected."""
        with pytest.raises(InvalidAccountError):
            await accrual_service.deposit(
                "not-an-address", ONE_HUNDRED_TOKENS, True, False, now=GENESIS
            )


class TestDeposit:
    """Tests for successful deposits."""

    @pytest.mark.asyncio
    async def test_short_deposit_without_membership(
        self, accrual_service, give_tokens
    ):
        """100 tokens, short tier, no membership: 45 days, no boost."""
        await give_tokens(ALICE)

        record = await accrual_service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS
        )

        ids = await accrual_service.get_user_deposits(ALICE)
        stored = await accrual_service.get_deposit(ALICE, ids[0])
        assert ids == [record.record_id]
        assert stored.principal == ONE_HUNDRED_TOKENS
        assert stored.deposited_at == GENESIS
        assert stored.withdrawable_at == GENESIS + FORTY_FIVE_DAYS
        assert stored.lock_up_duration == FORTY_FIVE_DAYS
        assert stored.boosted is False
        assert stored.status == DepositStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_long_deposit_with_membership(
        self, accrual_service, give_tokens
    ):
        """Holding membership tokens at deposit time boosts the record."""
        await give_tokens(ALICE, membership_amount=ONE_HUNDRED_TOKENS)

        record = await accrual_service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, False, True, now=GENESIS
        )

        assert record.lock_up_duration == ONE_HUNDRED_EIGHTY_DAYS
        assert record.withdrawable_at == GENESIS + ONE_HUNDRED_EIGHTY_DAYS
        assert record.boosted is True

    @pytest.mark.asyncio
    async def test_deposit_moves_funds_into_custody(
        self, accrual_service, give_tokens, usdt
    ):
        """Depositor loses exactly the amount, custody gains it."""
        await give_tokens(ALICE)
        custody_before = await usdt.balance_of(CUSTODY)

        await accrual_service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS
        )

        assert await usdt.balance_of(ALICE) == 0
        assert await usdt.balance_of(CUSTODY) == custody_before + ONE_HUNDRED_TOKENS
        assert await usdt.allowance(ALICE, CUSTODY) == 0

    @pytest.mark.asyncio
    async def test_each_deposit_appends_one_id(
        self, accrual_service, give_tokens
    ):
        """Deposits append to the id list and never drop earlier ids."""
        await give_tokens(ALICE, 3 * ONE_HUNDRED_TOKENS)

        seen = []
        for i in range(3):
            record = await accrual_service.deposit(
                ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS + i
            )
            seen.append(record.record_id)
            assert await accrual_service.get_user_deposits(ALICE) == seen

        assert len(set(seen)) == 3

    @pytest.mark.asyncio
    async def test_same_second_deposits_get_distinct_ids(
        self, accrual_service, give_tokens
    ):
        """Two deposits in the same block time still get unique ids."""
        await give_tokens(ALICE, 2 * ONE_HUNDRED_TOKENS)

        first = await accrual_service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS
        )
        second = await accrual_service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, False, True, now=GENESIS
        )

        assert first.record_id != second.record_id

    @pytest.mark.asyncio
    async def test_insufficient_allowance_leaves_no_record(
        self, accrual_service, give_tokens, usdt
    ):
        """A refused pull creates no record and moves nothing."""
        await give_tokens(ALICE, approve=ONE_HUNDRED_TOKENS - 1)

        with pytest.raises(TransferFailedError, match="allowance"):
            await accrual_service.deposit(
                ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS
            )

        assert await accrual_service.get_user_deposits(ALICE) == []
        assert await usdt.balance_of(ALICE) == ONE_HUNDRED_TOKENS
        assert await usdt.allowance(ALICE, CUSTODY) == ONE_HUNDRED_TOKENS - 1

    @pytest.mark.asyncio
    async def test_insufficient_balance_leaves_no_record(
        self, accrual_service, give_tokens, usdt
    ):
        """Depositing more than the balance fails atomically."""
        await give_tokens(ALICE, approve=2 * ONE_HUNDRED_TOKENS)

        with pytest.raises(TransferFailedError, match="balance"):
            await accrual_service.deposit(
                ALICE, 2 * ONE_HUNDRED_TOKENS, True, False, now=GENESIS
            )

        assert await accrual_service.get_user_deposits(ALICE) == []
        assert await usdt.balance_of(ALICE) == ONE_HUNDRED_TOKENS

    @pytest.mark.asyncio
    async def test_boost_fixed_at_creation(
        self, accrual_service, deposit_helper, membership, db_session
    ):
        """Later membership changes do not re-evaluate the boost."""
        record = await deposit_helper(ALICE)
        await membership.mint(ALICE, ONE_TOKEN)
        await db_session.commit()

        stored = await accrual_service.get_deposit(ALICE, record.record_id)
        assert stored.boosted is False


class TestWithdraw:
    """Tests for withdrawal."""

    @pytest.mark.asyncio
    async def test_unknown_record_has_no_balance(
        self, accrual_service, deposit_helper
    ):
        """An id never created for the caller fails with NoBalance."""
        await deposit_helper(ALICE)
        any_id = generate_record_id(ALICE, 99, GENESIS, "other")

        with pytest.raises(NoBalanceError, match="No balance to withdraw"):
            await accrual_service.withdraw(ALICE, any_id, now=GENESIS)

    @pytest.mark.asyncio
    async def test_foreign_record_has_no_balance(
        self, accrual_service, deposit_helper, funded_custody
    ):
        """Another account's record id cannot be withdrawn."""
        record = await deposit_helper(ALICE)

        with pytest.raises(NoBalanceError):
            await accrual_service.withdraw(
                BOB, record.record_id, now=GENESIS + FORTY_FIVE_DAYS
            )

    @pytest.mark.asyncio
    async def test_cannot_withdraw_before_lock_up(
        self, accrual_service, deposit_helper
    ):
        """One second before withdrawable_at is still locked."""
        record = await deposit_helper(ALICE)
        record_id = record.record_id

        with pytest.raises(LockUpNotElapsedError, match="Cannot withdraw yet") as exc:
            await accrual_service.withdraw(
                ALICE, record_id, now=GENESIS + FORTY_FIVE_DAYS - 1
            )

        assert exc.value.withdrawable_at == GENESIS + FORTY_FIVE_DAYS
        stored = await accrual_service.get_deposit(ALICE, record_id)
        assert stored.principal == ONE_HUNDRED_TOKENS

    @pytest.mark.asyncio
    async def test_withdraw_at_exact_unlock_time(
        self, accrual_service, deposit_helper, funded_custody, usdt
    ):
        """Withdrawal succeeds at withdrawable_at."""
        record = await deposit_helper(ALICE)

        payout = await accrual_service.withdraw(
            ALICE, record.record_id, now=GENESIS + FORTY_FIVE_DAYS
        )

        assert payout == 118 * ONE_TOKEN
        assert await usdt.balance_of(ALICE) == payout

    @pytest.mark.asyncio
    async def test_withdrawn_record_zeroed_in_place(
        self, accrual_service, deposit_helper, funded_custody
    ):
        """Retired record stays listed with zero principal."""
        record = await deposit_helper(ALICE)
        now = GENESIS + FORTY_FIVE_DAYS + 10

        payout = await accrual_service.withdraw(ALICE, record.record_id, now=now)

        assert await accrual_service.get_user_deposits(ALICE) == [record.record_id]
        stored = await accrual_service.get_deposit(ALICE, record.record_id)
        assert stored.principal == 0
        assert stored.status == DepositStatus.WITHDRAWN.value
        assert stored.withdrawn_at == now
        assert stored.paid_amount == payout
        assert stored.lock_up_duration == FORTY_FIVE_DAYS

    @pytest.mark.asyncio
    @pytest.mark.critical
    async def test_second_withdraw_fails_without_transfer(
        self, accrual_service, deposit_helper, funded_custody, usdt, db_session
    ):
        """Withdrawing the same id twice pays out once."""
        record = await deposit_helper(ALICE)
        record_id = record.record_id
        now = GENESIS + FORTY_FIVE_DAYS

        await accrual_service.withdraw(ALICE, record_id, now=now)
        alice_after_first = await usdt.balance_of(ALICE)

        with pytest.raises(NoBalanceError):
            await accrual_service.withdraw(ALICE, record_id, now=now + 1)

        assert await usdt.balance_of(ALICE) == alice_after_first
        payouts = await TransferRepository(db_session).get_by_reference(
            record_id, type=TransferType.PAYOUT.value
        )
        assert len(payouts) == 1

    @pytest.mark.asyncio
    async def test_underfunded_custody_keeps_record_active(
        self, accrual_service, deposit_helper
    ):
        """Custody that cannot cover the payout leaves the record active."""
        record = await deposit_helper(ALICE)
        record_id = record.record_id

        with pytest.raises(TransferFailedError, match="Insufficient balance"):
            await accrual_service.withdraw(
                ALICE, record_id, now=GENESIS + FORTY_FIVE_DAYS
            )

        stored = await accrual_service.get_deposit(ALICE, record_id)
        assert stored.principal == ONE_HUNDRED_TOKENS
        assert stored.status == DepositStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_long_boost_rate_pending_product_decision(
        self, accrual_service, deposit_helper, funded_custody
    ):
        """Boosted long deposits cannot be priced until the rate is set."""
        record = await deposit_helper(
            ALICE, short=False, membership_amount=ONE_TOKEN
        )
        record_id = record.record_id

        with pytest.raises(RateNotConfiguredError):
            await accrual_service.withdraw(
                ALICE, record_id, now=GENESIS + ONE_HUNDRED_EIGHTY_DAYS
            )

        stored = await accrual_service.get_deposit(ALICE, record_id)
        assert stored.principal == ONE_HUNDRED_TOKENS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("long_boost,expected", [(53, 153), (60, 160)])
    async def test_long_boost_rate_when_configured(
        self,
        db_session,
        usdt,
        membership,
        give_tokens,
        funded_custody,
        long_boost,
        expected,
    ):
        """Once configured, the long boosted cell follows the payout formula."""
        service = AccrualService(
            db_session,
            value_asset=usdt,
            membership_asset=membership,
            rate_policy=RatePolicy(RateTable(18, 23, 48, long_boost)),
        )
        await give_tokens(ALICE, membership_amount=ONE_TOKEN)
        record = await service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, False, True, now=GENESIS
        )

        payout = await service.withdraw(
            ALICE, record.record_id, now=GENESIS + ONE_HUNDRED_EIGHTY_DAYS
        )

        assert payout == expected * ONE_TOKEN


class RefusingPayoutToken(SqlToken):
    """Value asset that refuses payouts after the record was retired."""

    async def transfer_from(self, payer, payee, amount, spender=None,
                            transfer_type=TransferType.TRANSFER, reference_id=None):
        if transfer_type is TransferType.PAYOUT:
            raise TransferFailedError("Payout refused")
        return await super().transfer_from(
            payer, payee, amount, spender=spender,
            transfer_type=transfer_type, reference_id=reference_id,
        )


@pytest_asyncio.fixture
async def records(deposit_helper):
    """
    Alice: 100 tokens short, unboosted. Bob: 1 token long, boosted.

    Custody holds only the deposits, so Alice's 118 payout is uncovered.
    """
    alice = await deposit_helper(ALICE)
    bob = await deposit_helper(
        BOB, ONE_TOKEN, short=False, membership_amount=ONE_TOKEN
    )
    return {ALICE: alice, BOB: bob}


class TestRejectedWithdrawal:
    """A rejected withdrawal mutates nothing and keeps loaded records usable."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "account, unknown_id, elapsed, error",
        [
            (ALICE, True, FORTY_FIVE_DAYS, NoBalanceError),
            (ALICE, False, FORTY_FIVE_DAYS - 1, LockUpNotElapsedError),
            (BOB, False, ONE_HUNDRED_EIGHTY_DAYS, RateNotConfiguredError),
            (ALICE, False, FORTY_FIVE_DAYS, TransferFailedError),
        ],
        ids=["no-balance", "not-elapsed", "rate-not-configured", "custody-short"],
    )
    async def test_rejection_leaves_state_untouched(
        self, accrual_service, usdt, records, account, unknown_id, elapsed, error
    ):
        record_id = (
            generate_record_id(account, 99, GENESIS, "other")
            if unknown_id
            else records[account].record_id
        )
        balances_before = [
            await usdt.balance_of(account),
            await usdt.balance_of(CUSTODY),
        ]

        with pytest.raises(error):
            await accrual_service.withdraw(account, record_id, now=GENESIS + elapsed)

        # Records returned by deposit() are still loaded and readable
        assert records[ALICE].principal == ONE_HUNDRED_TOKENS
        assert records[BOB].principal == ONE_TOKEN
        for owner, record in records.items():
            stored = await accrual_service.get_deposit(owner, record.record_id)
            assert stored.principal == record.principal
            assert stored.status == DepositStatus.ACTIVE.value
        assert [
            await usdt.balance_of(account),
            await usdt.balance_of(CUSTODY),
        ] == balances_before

    @pytest.mark.asyncio
    async def test_refused_payout_rolls_back_retirement(
        self, db_session, membership, give_tokens, funded_custody
    ):
        """A payout refused after retirement restores the record."""
        token = RefusingPayoutToken(db_session, settings.value_asset_symbol)
        service = AccrualService(
            db_session, value_asset=token, membership_asset=membership
        )
        await give_tokens(ALICE)
        record = await service.deposit(
            ALICE, ONE_HUNDRED_TOKENS, True, False, now=GENESIS
        )

        with pytest.raises(TransferFailedError, match="Payout refused"):
            await service.withdraw(
                ALICE, record.record_id, now=GENESIS + FORTY_FIVE_DAYS
            )

        assert record.principal == ONE_HUNDRED_TOKENS
        assert record.status == DepositStatus.ACTIVE.value
        assert record.paid_amount is None
        assert await token.balance_of(CUSTODY) == funded_custody + ONE_HUNDRED_TOKENS

    @pytest.mark.asyncio
    async def test_rejected_deposit_keeps_earlier_records_usable(
        self, accrual_service, records, usdt
    ):
        """Deposit without allowance is refused; earlier records stay loaded."""
        with pytest.raises(TransferFailedError, match="allowance"):
            await accrual_service.deposit(
                ALICE, ONE_TOKEN, True, False, now=GENESIS
            )

        assert records[ALICE].principal == ONE_HUNDRED_TOKENS
        assert await accrual_service.get_user_deposits(ALICE) == [
            records[ALICE].record_id
        ]


class TestTimestamps:
    """Tests for operation time validation."""

    @pytest.mark.asyncio
    async def test_negative_deposit_time_rejected(self, accrual_service, give_tokens):
        await give_tokens(ALICE)

        with pytest.raises(InvalidTimestampError):
            await accrual_service.deposit(
                ALICE, ONE_HUNDRED_TOKENS, True, False, now=-1
            )

        assert await accrual_service.get_user_deposits(ALICE) == []

    @pytest.mark.asyncio
    async def test_negative_withdraw_time_rejected(
        self, accrual_service, deposit_helper
    ):
        record = await deposit_helper(ALICE)

        with pytest.raises(InvalidTimestampError):
            await accrual_service.withdraw(ALICE, record.record_id, now=-1)


class TestEighteenDecimals:
    """Amounts of an 18-decimal asset exceed 64-bit integers."""

    WEI = 10**18

    @pytest.mark.asyncio
    async def test_deposit_and_withdraw(
        self, accrual_service, usdt, give_tokens, db_session
    ):
        await usdt.mint(BOB, 100_000 * self.WEI)
        await db_session.commit()
        await accrual_service.fund_custody(BOB, 100_000 * self.WEI)
        await give_tokens(ALICE, 100 * self.WEI)

        record = await accrual_service.deposit(
            ALICE, 100 * self.WEI, True, False, now=GENESIS
        )
        stored = await accrual_service.get_deposit(ALICE, record.record_id)
        payout = await accrual_service.withdraw(
            ALICE, record.record_id, now=GENESIS + FORTY_FIVE_DAYS
        )

        assert stored.principal == 100 * self.WEI
        assert payout == 118 * self.WEI
        assert await usdt.balance_of(ALICE) == 118 * self.WEI
        assert await usdt.balance_of(CUSTODY) == 99_982 * self.WEI

    @pytest.mark.asyncio
    async def test_odd_amount_kept_exactly(self, accrual_service, give_tokens):
        amount = 123_456_789_012_345_678_901_234
        await give_tokens(ALICE, amount)

        record = await accrual_service.deposit(ALICE, amount, False, True, now=GENESIS)

        stored = await accrual_service.get_deposit(ALICE, record.record_id)
        assert stored.principal == amount
        assert await accrual_service.preview_payout(
            ALICE, record.record_id
        ) == amount + amount * 48 // 100

    @pytest.mark.asyncio
    async def test_amount_above_256_bits_rejected(self, accrual_service):
        with pytest.raises(InvalidAmountError):
            await accrual_service.deposit(ALICE, 2**256, True, False, now=GENESIS)


class TestQueries:
    """Tests for read-only queries."""

    @pytest.mark.asyncio
    async def test_preview_payout(self, accrual_service, deposit_helper):
        """Preview matches the eventual payout."""
        record = await deposit_helper(ALICE, membership_amount=ONE_TOKEN)

        assert await accrual_service.preview_payout(
            ALICE, record.record_id
        ) == 123 * ONE_TOKEN

    @pytest.mark.asyncio
    async def test_get_deposit_accepts_lowercase_account(
        self, accrual_service, deposit_helper
    ):
        """Accounts are normalized to checksum form."""
        record = await deposit_helper(ALICE)

        stored = await accrual_service.get_deposit(ALICE.lower(), record.record_id)

        assert stored is not None
        assert stored.account == ALICE

    @pytest.mark.asyncio
    async def test_fund_custody(self, accrual_service, usdt, db_session):
        """Operator funding moves tokens into custody."""
        await usdt.mint(BOB, 1_000 * ONE_TOKEN)
        await db_session.commit()

        await accrual_service.fund_custody(BOB, 1_000 * ONE_TOKEN)

        assert await usdt.balance_of(CUSTODY) == 1_000 * ONE_TOKEN
        assert await usdt.balance_of(BOB) == 0
