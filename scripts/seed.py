"""Seed the blog database with an admin, users, posts, comments and likes."""
import argparse
import asyncio
import random
import time

from blog_api.config import settings
from blog_api.database import Base, async_session, engine
from blog_api.models import Comment, CommentStatus, Like, Post, Role, User
from blog_api.services.user_service import hash_password

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "security", "performance", "asyncio", "sqlalchemy"]

DEFAULT_PASSWORD = "password123"


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 30 if small else 1000
    max_comments_per_post = 3 if small else 8

    print(f"Seeding: {num_users} users, {num_posts} posts")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    password_hash = hash_password(DEFAULT_PASSWORD)

    async with async_session() as session:
        admin = User(
            username="admin",
            email=(settings.ADMIN_EMAIL or "admin@example.com").lower(),
            password_hash=password_hash,
            role=Role.ADMIN,
            email_verified=True,
        )
        session.add(admin)

        users = []
        for i in range(num_users):
            user = User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                password_hash=password_hash,
                role=Role.REGULAR,
                # A few unverified accounts to exercise the verification gate.
                email_verified=random.random() > 0.2,
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created 1 admin and {len(users)} users (password: {DEFAULT_PASSWORD})")

        total_comments = 0
        total_likes = 0
        for i in range(num_posts):
            topic = random.choice(TOPICS)
            post = Post(
                title=f"Post {i}: notes on {topic}",
                body=f"This is the body of post {i} about {topic}. " * 10,
                user_id=admin.id,
            )
            session.add(post)
            await session.flush()

            commenters = [u for u in users if u.email_verified]
            for _ in range(random.randint(0, max_comments_per_post)):
                session.add(Comment(
                    body=f"Thoughts on {topic} from a reader.",
                    post_id=post.id,
                    user_id=random.choice(commenters).id,
                    status=CommentStatus.APPROVED if random.random() > 0.3 else CommentStatus.PENDING,
                ))
                total_comments += 1

            # random.sample keeps (post, user) pairs unique.
            for liker in random.sample(users, k=random.randint(0, len(users) // 2)):
                session.add(Like(post_id=post.id, user_id=liker.id))
                total_likes += 1

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Likes: {total_likes}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
