from aiogram.fsm.state import State, StatesGroup


class CheckoutFlow(StatesGroup):
    waiting_address = State()
