# schema/analytics.py
from pydantic import BaseModel
from typing import List, Optional
from schema.customer import CustomerResponse
from schema.order import OrderResponse
from schema.product import ProductResponse

class CategorySpending(BaseModel):
    category: str
    amount: float
    percentage: float

class CustomerSpending(BaseModel):
    customer: CustomerResponse
    totalSpent: float
    orderCount: int
    averageOrderValue: float
    recentOrders: List[OrderResponse] = []
    purchasesByCategory: List[CategorySpending] = []

class TopProduct(BaseModel):
    product: Optional[ProductResponse] = None
    totalSold: int
    revenue: float
    orderCount: int

class DailySales(BaseModel):
    date: str
    sales: float
    orderCount: int

class CategorySales(BaseModel):
    category: str
    sales: float
    percentage: float

class SalesAnalytics(BaseModel):
    totalSales: float
    orderCount: int
    averageOrderValue: float
    salesByDay: List[DailySales] = []
    salesByCategory: List[CategorySales] = []
    topProducts: List[TopProduct] = []
