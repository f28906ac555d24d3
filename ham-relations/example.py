#!/usr/bin/env python3
"""
Example usage of ham-relations.

Defines three related models, fills an in-memory SQLite database and walks
the relations in both directions.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from ham_relations import Base, Database, RelationalModel

post_tag = Table(
    "post_tag",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)


class User(RelationalModel, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)

    def posts(self):
        return self.has_many(Post)


class Post(RelationalModel, Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    title = Column(String(100), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"))

    def user(self):
        return self.belongs_to(User)

    def tags(self):
        return self.belongs_to_many(Tag)


class Tag(RelationalModel, Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)

    def posts(self):
        return self.belongs_to_many(Post)


def main():
    print("ham-relations Example")
    print("=====================")

    db = Database("sqlite:///:memory:")
    db.init_db(Base)
    session = db.new_session()

    session.add_all([
        User(id=1, name="John Doe"),
        Post(id=1, title="Conventions", user_id=1),
        Post(id=2, title="Join tables", user_id=1),
        Tag(id=1, name="orm"),
    ])
    session.flush()
    session.execute(post_tag.insert(), [{"post_id": 1, "tag_id": 1}, {"post_id": 2, "tag_id": 1}])
    session.commit()

    user = session.get(User, 1)
    relation = user.posts()
    print(f"\n{relation!r}")
    for post in relation.get_results():
        print(f"  - {post.title}")

    post = session.get(Post, 2)
    print(f"\n{post.user()!r}")
    print(f"  author: {post.user().get_results().name}")

    tag = session.get(Tag, 1)
    relation = tag.posts()
    print(f"\n{relation!r}")
    print(f"  posts tagged {tag.name}: {relation.get_results().values('title')}")

    session.close()
    db.close()


if __name__ == "__main__":
    main()
