#!/usr/bin/env python3
"""
Standalone script to create a user for the Savings Tracker API and print a bearer token
Usage: python create_user.py
"""

import asyncio
from sqlalchemy import select
from app.core.auth import User, create_access_token
from app.core.database import AsyncSessionLocal, engine
# Register every table before the first query
from app.models import savings_goal, savings_deposit, notification  # noqa: F401

async def create_user():
    print("Creating user...")

    email = input("Enter user email: ") or "saver@example.com"
    full_name = input("Enter full name (optional): ") or None

    async with AsyncSessionLocal() as session:
        try:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalars().first()
            if user:
                print(f"User with email {email} already exists, issuing a new token")
            else:
                user = User(email=email, full_name=full_name)
                session.add(user)
                await session.commit()
                await session.refresh(user)
                print(f"✅ User created successfully!")

            print(f"📧 Email: {user.email}")
            print(f"🔑 ID: {user.id}")
            print(f"🎟️  Token: {create_access_token(str(user.id))}")

        except Exception as e:
            print(f"❌ Error creating user: {e}")
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(create_user())
