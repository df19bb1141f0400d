from typing import List

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

from storefront.models import Address


def main_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/products"), KeyboardButton(text="/cart")],
            [KeyboardButton(text="/checkout"), KeyboardButton(text="/confirm")],
            [KeyboardButton(text="/orders"), KeyboardButton(text="/help")],
        ],
        resize_keyboard=True,
    )


def addresses_kb(addresses: List[Address]) -> ReplyKeyboardMarkup:
    rows = [[KeyboardButton(text=a.id)] for a in addresses]
    rows.append([KeyboardButton(text="/cancel")])
    return ReplyKeyboardMarkup(keyboard=rows, resize_keyboard=True, one_time_keyboard=True)
