KIND_DEPOSIT = "deposit"
KIND_WITHDRAWAL = "withdrawal"


class TransactionStoreError(Exception):
    def __init__(self, tx_id):
        self.tx_id = tx_id
        super().__init__(f"{self.reason}: {tx_id}")


class DuplicateTransaction(TransactionStoreError):
    reason = "duplicate tx_id"


class UnknownTransaction(TransactionStoreError):
    reason = "unknown tx_id"


class TransactionRecord:
    def __init__(self, tx_id, client_id, amount, kind):
        self.tx_id = tx_id
        self.client_id = client_id
        self.amount = amount
        self.kind = kind
        self.disputed = False
        self.charged_back = False

    def __repr__(self):
        return (f"TransactionRecord(tx={self.tx_id}, client={self.client_id}, amount={self.amount}, "
                f"kind={self.kind}, disputed={self.disputed}, charged_back={self.charged_back})")


class TransactionStore:
    """
    Remembers every posted deposit and withdrawal by tx_id so later dispute,
    resolve and chargeback rows can find the client and amount they refer to.

    Only flags are mutated after a record is created. Whether a flag change is
    allowed is decided by the caller.
    """

    def __init__(self):
        # we will have an issue if we dont have enough memory for all the tx tracking.
        self.tx_log = {}

    def __len__(self):
        return len(self.tx_log)

    def __contains__(self, tx_id):
        return tx_id in self.tx_log

    def record(self, tx_id, client_id, amount, kind=KIND_DEPOSIT):
        if tx_id in self.tx_log:
            raise DuplicateTransaction(tx_id)
        tx = TransactionRecord(tx_id, client_id, amount, kind)
        self.tx_log[tx_id] = tx
        return tx

    def lookup(self, tx_id):
        return self.tx_log.get(tx_id)

    def mark_disputed(self, tx_id):
        self._get(tx_id).disputed = True

    def mark_resolved(self, tx_id):
        self._get(tx_id).disputed = False

    def mark_charged_back(self, tx_id):
        tx = self._get(tx_id)
        tx.disputed = False
        tx.charged_back = True

    def _get(self, tx_id):
        tx = self.tx_log.get(tx_id)
        if tx is None:
            raise UnknownTransaction(tx_id)
        return tx
