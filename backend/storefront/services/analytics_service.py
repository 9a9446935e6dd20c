"""Admin dashboard analytics. Daily series are zero-filled with pandas."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.models import (
    Category,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    Profile,
)
from storefront.schemas.schemas import ProductResponse

logger = logging.getLogger(__name__)

OPEN_ORDER_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
)


def daily_series(
    rows: List[Dict[str, Any]],
    start: datetime,
    end: datetime,
    value_columns: List[str],
    date_column: str = "created_at",
) -> List[Dict[str, Any]]:
    """
    Aggregate ``rows`` per calendar day between ``start`` and ``end``.

    Days with no rows are present with zeros, so charts get a continuous axis.
    ``value_columns`` are summed; a ``count`` column is always added.
    """
    days = pd.date_range(start=start.date(), end=end.date(), freq="D")
    frame = pd.DataFrame(rows, columns=[date_column] + value_columns)

    if frame.empty:
        grouped = pd.DataFrame(0, index=days, columns=value_columns + ["count"])
    else:
        frame["day"] = pd.to_datetime(frame[date_column]).dt.normalize()
        frame["count"] = 1
        grouped = frame.groupby("day")[value_columns + ["count"]].sum()
        grouped = grouped.reindex(days, fill_value=0)

    result = []
    for day, row in grouped.iterrows():
        entry = {"date": day.strftime("%Y-%m-%d"), "count": int(row["count"])}
        for column in value_columns:
            entry[column] = round(float(row[column]), 2)
        result.append(entry)
    return result


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def _paid_orders_since(self, since: datetime) -> List[Dict[str, Any]]:
        orders = (
            self.db.query(Order.created_at, Order.total_amount)
            .filter(Order.created_at >= since, Order.payment_status == PaymentStatus.PAID.value)
            .all()
        )
        return [{"created_at": o.created_at, "revenue": o.total_amount or 0.0} for o in orders]

    def low_stock_products(self, limit: int = 10) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock_level)
            .order_by(Product.stock.asc())
            .limit(limit)
            .all()
        )

    def dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        paid = self.db.query(Order).filter(Order.payment_status == PaymentStatus.PAID.value)
        metrics = {
            "total_users": self.db.query(Profile).count(),
            "total_products": self.db.query(Product).filter(Product.is_active.is_(True)).count(),
            "total_orders": self.db.query(Order).count(),
            "total_revenue": round(
                paid.with_entities(func.coalesce(func.sum(Order.total_amount), 0)).scalar() or 0, 2
            ),
            "pending_orders": self.db.query(Order).filter(Order.status.in_(OPEN_ORDER_STATUSES)).count(),
            "low_stock_count": (
                self.db.query(Product)
                .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock_level)
                .count()
            ),
            "new_users_today": self.db.query(Profile).filter(Profile.created_at >= today).count(),
            "orders_today": self.db.query(Order).filter(Order.created_at >= today).count(),
            "revenue_today": round(
                paid.filter(Order.created_at >= today)
                .with_entities(func.coalesce(func.sum(Order.total_amount), 0))
                .scalar() or 0,
                2,
            ),
        }

        top_rows = (
            self.db.query(
                Product.id,
                Product.name,
                func.sum(OrderItem.quantity).label("quantity_sold"),
                func.sum(OrderItem.total_price).label("revenue"),
            )
            .join(OrderItem, OrderItem.product_id == Product.id)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.status != OrderStatus.CANCELLED.value)
            .group_by(Product.id, Product.name)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(5)
            .all()
        )
        top_products = [
            {
                "id": r.id,
                "name": r.name,
                "quantity_sold": int(r.quantity_sold or 0),
                "revenue": round(float(r.revenue or 0), 2),
            }
            for r in top_rows
        ]

        recent = self.db.query(Order).order_by(Order.created_at.desc()).limit(10).all()
        recent_orders = [
            {
                "id": o.id,
                "order_number": o.order_number,
                "customer_email": o.user.email if o.user else None,
                "total_amount": o.total_amount,
                "status": o.status,
                "payment_status": o.payment_status,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in recent
        ]

        week_start = today - timedelta(days=6)
        sales_chart = daily_series(self._paid_orders_since(week_start), week_start, now, ["revenue"])

        return {
            "metrics": metrics,
            "top_products": top_products,
            "recent_orders": recent_orders,
            "low_stock_products": [
                ProductResponse.model_validate(p).model_dump(mode="json") for p in self.low_stock_products()
            ],
            "sales_chart": sales_chart,
        }

    def revenue(self, period: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        start = (now - timedelta(days=period - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
        series = daily_series(self._paid_orders_since(start), start, now, ["revenue"])
        return {
            "period": period,
            "data": [{"date": d["date"], "revenue": d["revenue"], "orders": d["count"]} for d in series],
            "total_revenue": round(sum(d["revenue"] for d in series), 2),
            "total_orders": sum(d["count"] for d in series),
        }

    def products(self) -> Dict[str, Any]:
        distribution = (
            self.db.query(Category.name, func.count(Product.id))
            .outerjoin(Product, (Product.category_id == Category.id) & (Product.is_active.is_(True)))
            .group_by(Category.id, Category.name)
            .order_by(func.count(Product.id).desc())
            .all()
        )

        stocks = self.db.query(Product.stock, Product.min_stock_level).filter(Product.is_active.is_(True)).all()
        frame = pd.DataFrame(stocks, columns=["stock", "min_stock_level"])
        if frame.empty:
            stock_status = {"out_of_stock": 0, "low_stock": 0, "in_stock": 0}
        else:
            out = frame["stock"] <= 0
            low = ~out & (frame["stock"] <= frame["min_stock_level"])
            stock_status = {
                "out_of_stock": int(out.sum()),
                "low_stock": int(low.sum()),
                "in_stock": int((~out & ~low).sum()),
            }

        return {
            "category_distribution": [{"category": name, "count": count} for name, count in distribution],
            "stock_status": stock_status,
        }

    def users(self, days: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        start = (now - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
        signups = self.db.query(Profile.created_at).filter(Profile.created_at >= start).all()
        series = daily_series([{"created_at": s.created_at} for s in signups], start, now, [])

        roles = self.db.query(Profile.role, func.count(Profile.id)).group_by(Profile.role).all()
        return {
            "registrations": [{"date": d["date"], "count": d["count"]} for d in series],
            "role_distribution": [{"role": role, "count": count} for role, count in roles],
        }
