import sys
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow, localcontext

from payment_events import EventType
from payment_store import KIND_DEPOSIT, KIND_WITHDRAWAL, DuplicateTransaction, TransactionStore

# 2**32 tx ids of amounts under 10**24 sum to far fewer than 64 digits, so nothing here rounds
AMOUNT_CONTEXT = Context(prec=64, traps=[InvalidOperation, DivisionByZero, Overflow, Inexact])


class Account:
    def __init__(self, client_id):
        self.client_id = client_id
        self.available = Decimal(0)
        self.held = Decimal(0)
        self.locked = False

    @property
    def total(self):
        return AMOUNT_CONTEXT.add(self.available, self.held)

    def __repr__(self):
        return (f"Account(client={self.client_id}, available={self.available}, held={self.held}, "
                f"total={self.total}, locked={self.locked})")


class Ledger:
    """
    Applies transaction events to client accounts, one at a time and in input order.

    Events that cannot be applied (unknown tx, nsf, wrong client, locked account, ...)
    are dropped with a line on stderr and the ledger carries on.

    Policy:
      locked_accepts_deposits -- keep crediting deposits after a chargeback locked the account.
      disputable_withdrawals -- allow disputes against withdrawals, not just deposits. a disputed
        withdrawal holds the withdrawn amount; a chargeback returns it to available.
    """

    def __init__(self, store=None, locked_accepts_deposits=False, disputable_withdrawals=False):
        self.store = store if store is not None else TransactionStore()
        self.locked_accepts_deposits = locked_accepts_deposits
        self.disputable_withdrawals = disputable_withdrawals
        self.accounts = {}

        self.handlers = {
            EventType.DEPOSIT: self.process_deposit,
            EventType.WITHDRAWAL: self.process_withdrawal,
            EventType.DISPUTE: self.process_dispute,
            EventType.RESOLVE: self.process_resolve,
            EventType.CHARGEBACK: self.process_chargeback,
        }
        missing = set(EventType) - set(self.handlers)
        if missing:
            raise RuntimeError(f"no handler for event types: {sorted(t.value for t in missing)}")

    def get_account(self, client_id):
        if client_id not in self.accounts:
            self.accounts[client_id] = Account(client_id)
        return self.accounts[client_id]

    def apply(self, event):
        account = self.get_account(event.client_id)
        with localcontext(AMOUNT_CONTEXT):
            self.handlers[event.event_type](account, event)

    def snapshot(self):
        return {
            client_id: {
                "available": account.available,
                "held": account.held,
                "total": account.total,
                "locked": account.locked,
            }
            for client_id, account in self.accounts.items()
        }

    def process_deposit(self, account, event):
        amount = event.amount
        if amount is None or amount <= 0:
            self.reject(event, "invalid amount")
            return

        if account.locked and not self.locked_accepts_deposits:
            self.reject(event, "account is locked")
            return

        try:
            self.store.record(event.tx_id, event.client_id, amount, KIND_DEPOSIT)
        except DuplicateTransaction:
            self.reject(event, "deposit duplicates existing tx_id")
            return

        account.available += amount

    def process_withdrawal(self, account, event):
        amount = event.amount
        if amount is None or amount <= 0:
            self.reject(event, "invalid amount")
            return

        if account.locked:
            self.reject(event, "account is locked")
            return

        if event.tx_id in self.store:
            self.reject(event, "withdrawal duplicates existing tx_id")
            return

        if account.available < amount:
            self.reject(event, "nsf")
            return

        self.store.record(event.tx_id, event.client_id, amount, KIND_WITHDRAWAL)
        account.available -= amount

    def process_dispute(self, account, event):
        tx = self.get_referenced_tx(event)
        if tx is None:
            return

        if tx.charged_back:
            self.reject(event, "tx is charged back")
            return

        if tx.disputed:
            self.reject(event, "tx is already disputed")
            return

        if tx.kind == KIND_DEPOSIT:
            # the deposited funds may already have been withdrawn
            if account.available < tx.amount:
                self.reject(event, "insufficient available funds to hold")
                return
            account.available -= tx.amount
        account.held += tx.amount
        self.store.mark_disputed(tx.tx_id)

    def process_resolve(self, account, event):
        tx = self.get_referenced_tx(event)
        if tx is None:
            return

        if tx.charged_back:
            self.reject(event, "tx is charged back")
            return

        if not tx.disputed:
            self.reject(event, "tx is not disputed")
            return

        account.held -= tx.amount
        if tx.kind == KIND_DEPOSIT:
            account.available += tx.amount
        self.store.mark_resolved(tx.tx_id)

    def process_chargeback(self, account, event):
        tx = self.get_referenced_tx(event)
        if tx is None:
            return

        if tx.charged_back:
            self.reject(event, "tx is already charged back")
            return

        if not tx.disputed:
            self.reject(event, "tx is not disputed")
            return

        account.held -= tx.amount
        if tx.kind == KIND_WITHDRAWAL:
            # reversing a withdrawal gives the money back
            account.available += tx.amount
        account.locked = True
        self.store.mark_charged_back(tx.tx_id)

    def get_referenced_tx(self, event):
        tx = self.store.lookup(event.tx_id)
        if tx is None:
            self.reject(event, "tx not found")
            return None

        if tx.client_id != event.client_id:
            self.reject(event, "tx client_id mismatch")
            return None

        if tx.kind != KIND_DEPOSIT and not self.disputable_withdrawals:
            self.reject(event, "tx is not a deposit")
            return None

        return tx

    def reject(self, event, message):
        self.error_log(message, event.tx_id, event.client_id, event.event_type.value, event.amount)

    def error_log(self, message, tx_id, client_id, record_type, amount=None):
        formatted_prefix = f"tx_id {tx_id}, client_id {client_id}, failed to apply {record_type}"
        amount_detail = ""
        if amount is not None:
            amount_detail = f" of ${amount}"
        print(f"{formatted_prefix}{amount_detail}: {message}", file=sys.stderr)
