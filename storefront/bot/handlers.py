from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from aiogram import Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, ReplyKeyboardRemove

from storefront.bot.keyboards import addresses_kb, main_kb
from storefront.bot.states import CheckoutFlow
from storefront.errors import StorefrontError, ValidationError
from storefront.models import User
from storefront.services.cart import summarize
from storefront.services.orders import confirm_purchase, get_cart, start_checkout, update_cart
from storefront.utils.formatters import money

logger = logging.getLogger(__name__)

router = Router()

HELP_TEXT = (
    "<b>Storefront — команды</b>\n\n"
    "/start TOKEN — привязать аккаунт\n"
    "/products — каталог\n"
    "/cart — корзина\n"
    "/cart_add PRODUCT_ID QTY — установить количество\n"
    "/cart_remove PRODUCT_ID — удалить позицию\n"
    "/checkout [ADDRESS_ID] — оформить заказ\n"
    "/confirm — подтвердить оплату и очистить корзину\n"
    "/orders — мои заказы\n"
    "/cancel — отмена ввода\n"
)

NOT_LINKED = "Аккаунт не привязан. Отправь: /start TOKEN"


def _user(message: Message, store: Any) -> Optional[User]:
    return store.find_user_by_telegram_id(int(message.from_user.id))


def _parse_qty(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ValidationError("QTY должно быть целым числом, пример: 2")


def parse_cart_add(text: str) -> Tuple[str, int]:
    parts = (text or "").split()
    if len(parts) != 3:
        raise ValidationError("Формат: /cart_add PRODUCT_ID QTY")
    return parts[1], _parse_qty(parts[2])


def products_text(store: Any) -> str:
    rows = store.list_products()
    if not rows:
        return "Каталог пуст."
    lines = ["<b>Товары:</b>"]
    for p in rows:
        lines.append(f"• <code>{p.id}</code> — {p.name} ({p.category}) | {money(p.cost)}")
    return "\n".join(lines)


def cart_text(store: Any, user: User) -> str:
    summary = summarize(get_cart(store, user.id), store.get_product)
    if not summary.lines:
        return "🧺 Корзина пуста."
    lines = ["<b>Корзина:</b>"]
    for ln in summary.lines:
        lines.append(f"• {ln.product.name} × {ln.qty} = {money(ln.line_total)}")
    lines.append("")
    lines.append(f"Позиций: {summary.total_items}")
    lines.append(f"<b>Итого: {money(summary.total_value)}</b>")
    lines.append(f"Баланс: {money(user.balance)}")
    return "\n".join(lines)


@router.message(Command("start"))
async def cmd_start(message: Message, store: Any):
    parts = (message.text or "").split(maxsplit=1)
    if len(parts) == 2:
        user = store.find_user_by_token(parts[1].strip())
        if user is None:
            await message.answer("❌ Неверный токен")
            return
        store.link_telegram(user, int(message.from_user.id))
        logger.info("telegram %s linked to %s", message.from_user.id, user.username)
        await message.answer(f"✅ Привет, <b>{user.username}</b>!", reply_markup=main_kb())
        return

    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return
    await message.answer(f"✅ Storefront. Баланс: {money(user.balance)}", reply_markup=main_kb())


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer("❎ Отменено.", reply_markup=ReplyKeyboardRemove())


@router.message(Command("products"))
async def cmd_products(message: Message, store: Any):
    await message.answer(products_text(store))


@router.message(Command("cart"))
async def cmd_cart(message: Message, store: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return
    await message.answer(cart_text(store, user))


@router.message(Command("cart_add"))
async def cmd_cart_add(message: Message, store: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return

    try:
        product_id, qty = parse_cart_add(message.text)
        update_cart(store, user.id, product_id, qty)
    except StorefrontError as e:
        await message.answer(f"❌ {e.message}")
        return

    await message.answer(f"✅ {product_id} × {qty}\n\n" + cart_text(store, store.load(user.id)))


@router.message(Command("cart_remove"))
async def cmd_cart_remove(message: Message, store: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return

    parts = (message.text or "").split()
    if len(parts) != 2:
        await message.answer("Формат: /cart_remove PRODUCT_ID")
        return

    try:
        update_cart(store, user.id, parts[1], 0)
    except StorefrontError as e:
        await message.answer(f"❌ {e.message}")
        return
    await message.answer(f"✅ Удалено из корзины: {parts[1]}")


async def _place_order(message: Message, store: Any, payments: Any, user: User, address_id: str) -> None:
    try:
        order = start_checkout(store, payments, user.id, address_id)
    except StorefrontError as e:
        await message.answer(f"❌ {e.message}", reply_markup=ReplyKeyboardRemove())
        return

    await message.answer(
        f"✅ Заказ #{order.id:06d} на {money(order.total)}\n"
        f"Оплата: {order.redirect_url}\n\n"
        "После оплаты отправь /confirm",
        reply_markup=main_kb(),
    )


@router.message(Command("checkout"))
async def cmd_checkout(message: Message, state: FSMContext, store: Any, payments: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return

    parts = (message.text or "").split(maxsplit=1)
    if len(parts) == 2 and parts[1].strip():
        await _place_order(message, store, payments, user, parts[1].strip())
        return

    if not user.addresses:
        # let the checkout report the missing address in order
        await _place_order(message, store, payments, user, "")
        return

    await state.set_state(CheckoutFlow.waiting_address)
    await message.answer("Выберите адрес доставки.\nОтмена: /cancel", reply_markup=addresses_kb(user.addresses))


@router.message(Command("confirm"))
async def cmd_confirm(message: Message, store: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return

    try:
        orders = confirm_purchase(store, user.id)
    except StorefrontError as e:
        await message.answer(f"❌ {e.message}")
        return

    if not orders:
        await message.answer("🧺 Корзина очищена.")
        return
    numbers = ", ".join(f"#{o.id:06d}" for o in orders)
    await message.answer(f"✅ Спасибо за покупку! Подтверждено: {numbers}")


@router.message(Command("orders"))
async def cmd_orders(message: Message, store: Any):
    user = _user(message, store)
    if user is None:
        await message.answer(NOT_LINKED)
        return

    rows = store.list_orders(user.id)
    if not rows:
        await message.answer("Заказов пока нет.")
        return
    lines: List[str] = ["<b>Заказы:</b>"]
    for o in rows:
        lines.append(f"• #{o.id:06d} {o.created_at} | {money(o.total, o.currency)} | {o.status}")
    await message.answer("\n".join(lines))


# registered last so commands sent while an address is awaited reach their own handlers
@router.message(CheckoutFlow.waiting_address)
async def checkout_wait_address(message: Message, state: FSMContext, store: Any, payments: Any):
    address_id = (message.text or "").strip()
    if not address_id or address_id.startswith("/"):
        await message.answer("Выберите адрес доставки.\nОтмена: /cancel")
        return

    user = _user(message, store)
    await state.clear()
    if user is None:
        await message.answer(NOT_LINKED)
        return

    await _place_order(message, store, payments, user, address_id)
