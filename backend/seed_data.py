import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from autoshop.database import init_db, session_scope
from autoshop.models.task import Task
from autoshop.models.user import User, UserRole
from autoshop.models.vehicle import Vehicle
from autoshop.utils.security import get_password_hash
from autoshop.workflow.enums import TaskPriority, TaskStatus

# Sample Data
USERS = [
    {"email": "admin@example.com", "full_name": "Shop Admin", "role": UserRole.ADMIN.value},
    {"email": "nimal@example.com", "full_name": "Nimal Perera", "role": UserRole.EMPLOYEE.value},
    {"email": "kasun@example.com", "full_name": "Kasun Silva", "role": UserRole.EMPLOYEE.value},
    {"email": "customer@example.com", "full_name": "Ayesha Fernando", "role": UserRole.CUSTOMER.value},
]

VEHICLES = [
    {"vin": "JTDBR32E720012345", "license_plate": "CAB-1234", "make": "Toyota", "model": "Axio", "year": 2018},
]

TASKS = [
    {
        "name": "Oil Change",
        "description": "Drain and replace engine oil and oil filter.",
        "estimated_hours": Decimal("1.00"),
        "estimated_cost": Decimal("6500.00"),
        "category": "Maintenance",
        "priority": TaskPriority.MEDIUM.value,
    },
    {
        "name": "Brake Pad Replacement",
        "description": "Replace front brake pads and inspect rotors.",
        "estimated_hours": Decimal("2.00"),
        "estimated_cost": Decimal("18000.00"),
        "category": "Brakes",
        "priority": TaskPriority.HIGH.value,
    },
    {
        "name": "Wheel Alignment",
        "description": "Four-wheel alignment with printout.",
        "estimated_hours": Decimal("1.50"),
        "estimated_cost": Decimal("4500.00"),
        "category": "Suspension",
        "priority": TaskPriority.LOW.value,
    },
    {
        "name": "AC Service",
        "description": "Recharge refrigerant and clean the cabin filter.",
        "estimated_hours": Decimal("2.50"),
        "estimated_cost": Decimal("12000.00"),
        "category": "Air Conditioning",
        "priority": TaskPriority.MEDIUM.value,
    },
]


async def seed_data():
    print("Initializing database...")
    await init_db()

    async with session_scope() as session:
        # 1. Ensure the demo accounts exist
        for user_data in USERS:
            result = await session.execute(select(User).where(User.email == user_data["email"]))
            if result.scalar_one_or_none():
                print(f"Found user: {user_data['email']}")
                continue
            session.add(
                User(
                    hashed_password=get_password_hash("password123"),
                    is_active=True,
                    **user_data,
                )
            )
            print(f"Creating {user_data['role']}: {user_data['email']}")
        await session.flush()

        # 2. Check and seed the service catalog
        result = await session.execute(select(func.count()).select_from(Task))
        count = result.scalar()

        if count == 0:
            print("Seeding services...")
            for task_data in TASKS:
                session.add(Task(status=TaskStatus.REQUESTED.value, **task_data))
            print(f"Added {len(TASKS)} services.")
        else:
            print(f"Database already has {count} services. Skipping seed.")

        # 3. Give the demo customer a vehicle to book with
        customer = (
            await session.execute(select(User).where(User.email == "customer@example.com"))
        ).scalar_one()
        for vehicle_data in VEHICLES:
            if (await session.execute(select(Vehicle.id).where(Vehicle.vin == vehicle_data["vin"]))).first():
                print(f"Found vehicle: {vehicle_data['license_plate']}")
                continue
            session.add(Vehicle(customer_id=customer.id, **vehicle_data))
            print(f"Registered vehicle {vehicle_data['license_plate']} for {customer.email}")


if __name__ == "__main__":
    asyncio.run(seed_data())
