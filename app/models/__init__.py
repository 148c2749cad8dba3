# Automatically load all models so metadata knows them
from app.models.user_model import User
from app.models.entry_model import Entry
from app.models.previous_outstanding_model import PreviousOutstandingRecord
from app.models.advance_payment_model import AdvancePayment, AdvancePaymentUsage
from app.models.transaction_log_model import TransactionLog
from app.models.receipt_number_model import IssuedReceiptNumber
