"""
Demo scenario: customers visiting a bank teller.

Each customer arrives at its own instant and makes a blocking call to the
teller, which takes service_time units per request and returns a receipt.

    simkernel run simkernel.demo:seed
    simkernel run simkernel.demo:seed_overdraft --policy continue
"""

from typing import Dict, List

from .core.entity import Entity, behavior
from .runtime import kronos
from .runtime.controller import Controller


class Overdraft(Exception):
    pass


class Teller(Entity):
    def __init__(self, balance: int = 100, service_time: int = 3) -> None:
        self.balance = balance
        self.service_time = service_time
        self.served: List[str] = []

    @behavior
    def withdraw(self, customer, amount):
        yield kronos.blocking_sleep(self.service_time)
        if amount > self.balance:
            raise Overdraft(f"{customer} asked for {amount}, balance {self.balance}")
        self.balance -= amount
        self.served.append(customer)
        return f"{customer}:{amount}@{kronos.now()}"


class Customer(Entity):
    def __init__(self, name: str) -> None:
        self.name = name
        self.receipts: List[str] = []

    @behavior
    def visit(self, teller, amount):
        receipt = yield kronos.call(teller, Teller.ordinal_of("withdraw"), self.name, amount)
        self.receipts.append(receipt)
        return receipt


def _seed(controller: Controller, amounts: Dict[str, int], balance: int) -> Teller:
    teller = Teller(balance=balance)
    visit = Customer.ordinal_of("visit")
    for arrival, (name, amount) in enumerate(sorted(amounts.items())):
        controller.post_event_at(arrival * 2, Customer(name), visit, (teller, amount))
    return teller


def seed(controller: Controller) -> None:
    _seed(controller, {"alice": 20, "bob": 30, "carol": 10}, balance=100)


def seed_overdraft(controller: Controller) -> None:
    _seed(controller, {"alice": 60, "bob": 60}, balance=100)
