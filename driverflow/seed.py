"""
Demo operators loaded when DRIVERFLOW_SEED_DEMO_DATA is set.
"""

from datetime import datetime

from driverflow.models import BotRules, Operator, OperatorSettings, Snapshot


def demo_operators() -> list[Operator]:
    return [
        Operator(
            id="op1",
            name="Transportes Rápidos SA",
            email="contacto@transportesrapidos.com",
            phone="+57 300 123 4567",
            created_at=datetime(2025, 1, 15, 10, 0, 0),
            settings=OperatorSettings(
                group_base_name="Servicios TR",
                group_photo="https://images.unsplash.com/photo-1557804506-669a67965ba0?w=400&h=400&fit=crop",
                max_clients_per_group=30,
            ),
        ),
        Operator(
            id="op2",
            name="Logística Express",
            email="admin@logisticaexpress.com",
            phone="+57 310 987 6543",
            created_at=datetime(2025, 2, 1, 14, 30, 0),
            settings=OperatorSettings(
                group_base_name="Express",
                group_photo="https://images.unsplash.com/photo-1566492031773-4f4e44671857?w=400&h=400&fit=crop",
                max_clients_per_group=30,
                bot_rules=BotRules(auto_remove_from_groups_on_ban=False),
            ),
        ),
        Operator(
            id="op3",
            name="Servicios del Norte",
            email="info@serviciosdelnorte.com",
            phone="+57 320 555 8888",
            created_at=datetime(2025, 3, 10, 9, 15, 0),
            is_active=False,
            settings=OperatorSettings(
                group_base_name="Norte",
                group_photo="https://images.unsplash.com/photo-1486406146926-c627a92ad1ab?w=400&h=400&fit=crop",
                max_clients_per_group=30,
                bot_rules=BotRules(
                    only_active_drivers_can_take_services=False,
                    block_services_for_banned_clients=False,
                ),
            ),
        ),
    ]


def demo_snapshot() -> Snapshot:
    return Snapshot(operators=demo_operators())
