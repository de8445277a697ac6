from extensions import db

class OrderRecord(db.Model):
    __tablename__ = "orders"

    # id выдаёт OrderLedger, не БД
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    item = db.Column(db.String(120), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    total = db.Column(db.Numeric(10, 2), nullable=False)
    time_slot = db.Column(db.String(16), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, index=True, default="pending")

    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_orders_quantity"),
    )
