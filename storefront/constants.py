ORDER_PENDING = "pending"
ORDER_CONFIRMED = "confirmed"
ORDER_CANCELLED = "cancelled"

PAYMENT_MOCK = "mock"
PAYMENT_STRIPE = "stripe"

PAYMENT_PROVIDERS = {
    PAYMENT_MOCK: "Local mock checkout",
    PAYMENT_STRIPE: "Stripe Checkout (test mode)",
}

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
