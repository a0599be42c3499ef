"""Tests for the product queue publisher and consumer."""

import asyncio
import json
from datetime import datetime, timezone

import pytest
import redis.asyncio as redis

from pc_scraper.config import settings
from pc_scraper.ingest.base import Product
from pc_scraper.messaging.base import QueueError, decode_message, encode_message, processing_key
from pc_scraper.messaging.consumer import ProductConsumer
from pc_scraper.messaging.publisher import ProductPublisher

QUEUE = "product_prices_test"

GPU = Product(
    title="Placa de Video ASUS RTX 4060",
    brand="ASUS",
    price=1999.9,
    raw_price="R$ 1.999,90",
    page=1,
    category="GPU",
)
CPU = Product(
    title="Processador AMD Ryzen 5 7600",
    brand="AMD",
    price=1099.0,
    raw_price="R$ 1.099,00",
    page=2,
    category="CPU",
)


def test_envelope_carries_product_and_timestamp():
    raw = encode_message(GPU, timestamp=datetime(2024, 5, 17, tzinfo=timezone.utc))
    envelope = json.loads(raw)

    assert envelope["content_type"] == "application/json"
    assert envelope["delivery_mode"] == "persistent"
    assert envelope["timestamp"] == "2024-05-17T00:00:00+00:00"
    assert envelope["body"] == {
        "title": "Placa de Video ASUS RTX 4060",
        "brand": "ASUS",
        "price": 1999.9,
        "raw_price": "R$ 1.999,90",
        "page": 1,
        "category": "GPU",
    }
    assert decode_message(raw) == GPU


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"no": "body"}),
        json.dumps({"body": {"title": "x"}}),
        json.dumps({"body": {**GPU.to_dict(), "price": "1999,90"}}),
    ],
)
def test_decode_rejects_malformed_messages(raw):
    with pytest.raises(ValueError):
        decode_message(raw)


@pytest.mark.asyncio
async def test_publish_requires_connection():
    publisher = ProductPublisher(queue_name=QUEUE)

    with pytest.raises(QueueError):
        await publisher.publish(GPU)


@pytest.mark.asyncio
async def test_consumer_receives_in_publish_order(fake_redis):
    publisher = ProductPublisher(queue_name=QUEUE, client=fake_redis)
    await publisher.publish(GPU)
    await publisher.publish(CPU)

    received = []
    stop = asyncio.Event()

    async def handler(product):
        received.append(product)
        if len(received) == 2:
            stop.set()

    consumer = ProductConsumer(handler, queue_name=QUEUE, client=fake_redis)
    await consumer.start(stop)

    assert received == [GPU, CPU]
    assert fake_redis.lists[QUEUE] == []
    assert fake_redis.lists[processing_key(QUEUE)] == []


@pytest.mark.asyncio
async def test_handler_failure_requeues_message(fake_redis):
    await fake_redis.lpush(QUEUE, encode_message(GPU))

    async def failing_handler(product):
        raise RuntimeError("database down")

    consumer = ProductConsumer(failing_handler, queue_name=QUEUE, client=fake_redis)
    raw = await fake_redis.blmove(QUEUE, processing_key(QUEUE), 1, "RIGHT", "LEFT")

    acked = await consumer.process_message(raw)

    assert acked is False
    assert fake_redis.lists[processing_key(QUEUE)] == []
    assert fake_redis.lists[QUEUE] == [raw]


@pytest.mark.asyncio
async def test_undecodable_message_is_requeued_without_calling_handler(fake_redis):
    await fake_redis.lpush(QUEUE, "garbage")
    calls = []

    async def handler(product):
        calls.append(product)

    consumer = ProductConsumer(handler, queue_name=QUEUE, client=fake_redis)
    raw = await fake_redis.blmove(QUEUE, processing_key(QUEUE), 1, "RIGHT", "LEFT")

    assert await consumer.process_message(raw) is False
    assert calls == []
    assert fake_redis.lists[QUEUE] == ["garbage"]


@pytest.mark.asyncio
async def test_requeued_message_is_delivered_again(fake_redis):
    await fake_redis.lpush(QUEUE, encode_message(GPU))
    attempts = []
    stop = asyncio.Event()

    async def flaky_handler(product):
        attempts.append(product)
        if len(attempts) == 1:
            raise RuntimeError("transient")
        stop.set()

    consumer = ProductConsumer(flaky_handler, queue_name=QUEUE, client=fake_redis)
    await consumer.start(stop)

    assert attempts == [GPU, GPU]
    assert fake_redis.lists[QUEUE] == []


@pytest.mark.asyncio
async def test_connect_recovers_unacked_messages(fake_redis):
    stranded = encode_message(CPU)
    await fake_redis.lpush(processing_key(QUEUE), stranded)
    await fake_redis.lpush(QUEUE, encode_message(GPU))

    async def handler(product):
        pass

    consumer = ProductConsumer(handler, queue_name=QUEUE, client=fake_redis)
    await consumer.connect()

    assert fake_redis.lists[processing_key(QUEUE)] == []
    # stranded message is consumed next
    assert fake_redis.lists[QUEUE][-1] == stranded


@pytest.mark.asyncio
async def test_start_returns_when_stopped(fake_redis):
    async def handler(product):
        pass

    stop = asyncio.Event()
    stop.set()
    consumer = ProductConsumer(handler, queue_name=QUEUE, client=fake_redis)

    await consumer.start(stop)


async def _redis_available() -> bool:
    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)
        await client.ping()
        await client.aclose()
        return True
    except Exception:
        return False


@pytest.mark.asyncio
async def test_round_trip_through_redis():
    if not await _redis_available():
        pytest.skip("Redis not available")

    queue = "product_prices_integration"
    client = redis.from_url(settings.redis_url, decode_responses=True)
    await client.delete(queue, processing_key(queue))

    publisher = ProductPublisher(queue_name=queue)
    await publisher.connect()
    await publisher.publish(GPU)
    await publisher.close()

    received = []
    stop = asyncio.Event()

    async def handler(product):
        received.append(product)
        stop.set()

    consumer = ProductConsumer(handler, queue_name=queue)
    await consumer.connect()
    await consumer.start(stop)
    await consumer.close()

    assert received == [GPU]
    assert await client.llen(queue) == 0
    assert await client.llen(processing_key(queue)) == 0
    await client.aclose()
