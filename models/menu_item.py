from extensions import db

class MenuItemRecord(db.Model):
    __tablename__ = "menu_items"

    name = db.Column(db.String(120), primary_key=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=True)  # NULL = без ограничения
    visible = db.Column(db.Boolean, default=True, nullable=False)
    custom = db.Column(db.JSON, nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint("stock IS NULL OR stock >= 0", name="ck_menu_items_stock"),
        db.Index("ix_menu_items_visible", "visible"),
    )
