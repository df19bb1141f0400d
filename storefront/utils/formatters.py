from storefront.config import settings


def money(v: int, currency: str = "") -> str:
    units = v / (10 ** settings.decimals)
    return f"{units:.{settings.decimals}f} {(currency or settings.currency).upper()}"
