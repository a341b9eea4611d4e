import csv
import sys
from decimal import Context, Decimal, ROUND_DOWN, InvalidOperation

from payment_events import AMOUNT_EVENT_TYPES, Event, EventType
from payment_ledger import Ledger

MAX_CLIENT_ID = 65535
MAX_TX_ID = 4294967295
# integer digits allowed in a single amount
MAX_AMOUNT_DIGITS = 24

QUANTIZE_CONTEXT = Context(prec=64)

DEFAULT_FIELD_ORDER = ["type", "client", "tx", "amount"]
OUTPUT_FIELDNAMES = ["client", "available", "held", "total", "locked"]


class InputFormatError(ValueError):
    """The input cannot be read as a transaction log at all. Aborts the run."""

    def __init__(self, message, line_num=None):
        self.line_num = line_num
        if line_num is not None:
            message = f"line {line_num}: {message}"
        super().__init__(message)


class PaymentEngine:
    def __init__(self, filename, ledger=None, precision=4):
        self.filename = filename
        self.ledger = ledger if ledger is not None else Ledger()
        self.quantum = Decimal(1).scaleb(-precision)
        self.valid_record_types = {event_type.value for event_type in EventType}
        self.set_field_order(DEFAULT_FIELD_ORDER)

    def set_field_order(self, names):
        self.type_field_idx = names.index("type")
        self.client_field_idx = names.index("client")
        self.tx_field_idx = names.index("tx")
        self.amount_field_idx = names.index("amount")

    def discover_field_order(self, header):
        """
        Work out column positions from the first row of the file.

        Returns True if the row was a header. A first row that already starts with
        a record type is data from a headerless file, so the default order is kept
        and False is returned so the caller can still process it.
        """
        names = [name.strip().lower() for name in header]
        if names and names[0] in self.valid_record_types:
            self.set_field_order(DEFAULT_FIELD_ORDER)
            return False

        missing = [name for name in DEFAULT_FIELD_ORDER if name not in names]
        if missing:
            raise InputFormatError(f"malformed header, missing {', '.join(missing)}: {header!r}", 1)

        self.set_field_order(names)
        return True

    def read_transaction_data(self):
        if not self.filename:
            raise RuntimeError("no filename to read has been set. aborting.")
        with open(self.filename, newline="", encoding="utf-8-sig") as file:
            for event in self.read_events(file):
                self.ledger.apply(event)
        return self.ledger

    def read_rows(self, csvreader):
        while True:
            try:
                record = next(csvreader)
            except StopIteration:
                return
            except UnicodeDecodeError as e:
                # decoding runs ahead of the csv reader, so there is no reliable line number
                raise InputFormatError(f"input is not valid utf-8: {e}") from e
            except csv.Error as e:
                raise InputFormatError(f"unreadable row: {e}", csvreader.line_num) from e
            yield record

    def read_events(self, file):
        csvreader = csv.reader(file)
        rows = self.read_rows(csvreader)
        header = next(rows, None)
        if header is None:
            raise InputFormatError("input is empty")

        if not self.discover_field_order(header):
            yield self.normalize_record(header, csvreader.line_num)

        for record in rows:
            # blank line
            if not record:
                continue
            yield self.normalize_record(record, csvreader.line_num)

    def normalize_record(self, record, line_num=None):
        try:
            record_type = record[self.type_field_idx].strip().lower()
            client_id = int(record[self.client_field_idx].strip())
            tx_id = int(record[self.tx_field_idx].strip())
        except IndexError as e:
            raise InputFormatError(f"too few fields in row like: {record!r}", line_num) from e
        except ValueError as e:
            raise InputFormatError(f"field format error: {e} in row like: {record!r}", line_num) from e

        if record_type not in self.valid_record_types:
            raise InputFormatError(f"invalid record_type {record_type!r}", line_num)

        if not (0 <= client_id <= MAX_CLIENT_ID):
            raise InputFormatError(f"invalid client_id {client_id}", line_num)

        if not (0 <= tx_id <= MAX_TX_ID):
            raise InputFormatError(f"invalid tx_id {tx_id}", line_num)

        event_type = EventType(record_type)
        amount = None
        if event_type in AMOUNT_EVENT_TYPES:
            amount = self.get_normalized_amount(record, line_num)

        return Event(event_type, client_id, tx_id, amount)

    def get_normalized_amount(self, record, line_num=None):
        # extra digits are truncated, never rounded up
        text = ""
        if len(record) > self.amount_field_idx:
            text = record[self.amount_field_idx].strip()
        if not text:
            raise InputFormatError(f"missing amount in row like: {record!r}", line_num)

        try:
            amount = Decimal(text)
            if not amount.is_finite():
                raise InvalidOperation(text)
        except InvalidOperation:
            raise InputFormatError(f"invalid amount {text!r}", line_num) from None

        if amount.adjusted() >= MAX_AMOUNT_DIGITS:
            raise InputFormatError(f"amount {text!r} is too large", line_num)
        return amount.quantize(self.quantum, rounding=ROUND_DOWN, context=QUANTIZE_CONTEXT)

    def format_amount(self, value):
        return format(value.quantize(self.quantum, context=QUANTIZE_CONTEXT).normalize(QUANTIZE_CONTEXT), "f")

    def get_account_totals(self):
        self.read_transaction_data()
        return self.ledger.snapshot()

    def generate_output(self, out=None):
        # the whole file is processed before anything is written
        account_totals = self.get_account_totals()
        csvwriter = csv.writer(out if out is not None else sys.stdout, lineterminator="\n")
        csvwriter.writerow(OUTPUT_FIELDNAMES)
        for client_id, client_accounting in account_totals.items():
            csvwriter.writerow([
                client_id,
                self.format_amount(client_accounting["available"]),
                self.format_amount(client_accounting["held"]),
                self.format_amount(client_accounting["total"]),
                str(client_accounting["locked"]).lower(),
            ])


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 1:
        print("usage: payment-engine TRANSACTIONS_CSV", file=sys.stderr)
        return 2

    try:
        PaymentEngine(argv[0]).generate_output()
    except (OSError, InputFormatError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
