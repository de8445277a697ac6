from extensions import db

class SlotBooking(db.Model):
    __tablename__ = "time_slot_bookings"

    slot = db.Column(db.String(16), primary_key=True)
    booked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    order_id = db.Column(db.Integer, nullable=True)


class LedgerCounter(db.Model):
    __tablename__ = "ledger_counters"

    name = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Integer, nullable=False, default=0)
