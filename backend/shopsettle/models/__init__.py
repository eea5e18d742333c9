from .tenancy import Organization
from .staff import Employee, EmployeeRole
from .catalog import CatalogItem, Discount
from .sales import Sale, SaleLine, EmployeeSale, InvoiceClaim
from .loyalty import LoyaltyAccount
from .commissions import CommissionRate, Payout

__all__ = [
    'Organization',
    'Employee', 'EmployeeRole',
    'CatalogItem', 'Discount',
    'Sale', 'SaleLine', 'EmployeeSale', 'InvoiceClaim',
    'LoyaltyAccount',
    'CommissionRate', 'Payout',
]
