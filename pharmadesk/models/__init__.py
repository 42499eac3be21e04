from pharmadesk.models.user import User
from pharmadesk.models.medicine import Medicine, MEDICINE_CATEGORIES
from pharmadesk.models.supplier import Supplier
from pharmadesk.models.stock import Stock, StockItem
from pharmadesk.models.sale import Sale, SaleItem

__all__ = ["User", "Medicine", "MEDICINE_CATEGORIES", "Supplier", "Stock", "StockItem", "Sale", "SaleItem"]
