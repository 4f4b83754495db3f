import logging
from typing import List

import structlog
from prometheus_client import start_http_server
from sqlalchemy import create_engine, MetaData, Table, Column
from sqlalchemy import Integer, String, ForeignKey
from sqlalchemy.engine import Row

from batchloader import make
from batchloader.sources.sqlalchemy import RowsQuery, CountQuery
from batchloader.telemetry.prometheus import LoaderMetrics


log = structlog.get_logger(__name__)

metadata = MetaData()

user_table = Table(
    "user",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String),
)

post_table = Table(
    "post",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String),
    Column("author_id", ForeignKey("user.id"), nullable=False),
)


def setup_db():
    sa_engine = create_engine("sqlite://")
    metadata.create_all(sa_engine)
    with sa_engine.begin() as connection:
        connection.execute(
            user_table.insert(),
            [{"id": i, "name": "user-{}".format(i)} for i in range(1, 6)],
        )
        connection.execute(
            post_table.insert(),
            [
                {"id": i, "title": "post-{}".format(i), "author_id": i % 3 + 1}
                for i in range(1, 11)
            ],
        )
    return sa_engine


def main():
    logging.basicConfig(level=logging.DEBUG)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    start_http_server(8000)
    log.info("Metrics are available on http://localhost:8000")

    sa_engine = setup_db()
    users_query = RowsQuery(sa_engine, user_table)
    posts_query = RowsQuery(
        sa_engine, post_table, key_column=post_table.c.author_id
    )
    posts_count_query = CountQuery(sa_engine, post_table.c.author_id)

    load_user = make(
        users_query,
        users_query.key,
        key_type=int,
        metrics=LoaderMetrics("users"),
    )
    load_posts = make(
        posts_query,
        posts_query.key,
        key_type=int,
        result_type=List[Row],
        metrics=LoaderMetrics("posts"),
    )
    load_posts_count = make(
        posts_count_query,
        posts_count_query.key,
        key_type=int,
        result_type=int,
        metrics=LoaderMetrics("posts_count"),
    )

    user_ids = range(1, 6)
    users = [load_user(i) for i in user_ids]
    posts = [load_posts(i) for i in user_ids]
    counts = [load_posts_count(i) for i in user_ids]
    for user, user_posts, count in zip(users, posts, counts):
        log.info(
            "User loaded",
            name=user().name,
            posts=[post.title for post in user_posts()],
            count=count(),
        )


if __name__ == "__main__":
    main()
