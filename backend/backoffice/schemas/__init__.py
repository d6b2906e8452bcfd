from .uploads import CHANNEL_UPLOAD_META, ChannelInfo, IngestResult, ItemsIngestResult, PurgeResult
from .orders import OrderItemOut, OrderOut, OrderPage
from .products import (
    ChannelPricing, PricingRow, ProductGroupIn, ProductGroupOut, ProductOut, ProductRef, ProductUpdate,
)
from .inventory import (
    GroupStockIn, InventoryConfigIn, InventoryConfigOut, ProductStockIn, ProductStockRow,
    StockLine, StockProjection, StockReport,
)
from .finance import (
    AdsDashboard, AdSpendIn, AdSpendOut, PaymentTypeFeeIn, PaymentTypeFeeOut,
    SalesByDay, SalesDashboard, SimulationResult,
)
from .bills import (
    BillIn, BillOut, BillPaymentIn, BillPaymentUpdate, BillsDashboard, BillUpdate, InstallmentsIn,
)
