#!/usr/bin/env python3
"""
consume.py - Consume messages from a Kafka 0.7 broker

What this example demonstrates:
- Resolving a starting offset with an offsets request
- Polling byte offsets forward through a partition
- Transparent decoding of gzip-compressed batches

Key Concepts:
- Offset: A byte position in the partition log, not a message number
- next_offset: Where the following fetch should start

Prerequisites:
    - Kafka 0.7 broker running on localhost:9092
    - pykafka07 installed: pip install -e .

Environment:
    KAFKA_BROKERS    Broker addresses (default: localhost:9092)
    KAFKA_TOPIC      Topic to consume (default: test)
    KAFKA_PARTITION  Partition to consume (default: 0)
    KAFKA_OFFSET     Starting byte offset (default: earliest available)

Run with:
    python consume.py
"""

import logging
import os
import sys

from pykafka07 import BrokerConnection, Consumer, ConsumerConfig, KafkaError


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    brokers = os.environ.get("KAFKA_BROKERS", "localhost:9092")
    topic = os.environ.get("KAFKA_TOPIC", "test")
    partition = int(os.environ.get("KAFKA_PARTITION", "0"))
    offset = os.environ.get("KAFKA_OFFSET")

    config = ConsumerConfig(poll_interval_ms=500)

    try:
        with BrokerConnection(topic, partition, brokers) as conn:
            consumer = Consumer(
                conn,
                offset=int(offset) if offset is not None else None,
                config=config,
            )
            print(f"Consuming {topic}/{partition} from offset {consumer.offset} (Ctrl+C to stop)")
            for message in consumer:
                print(f"[{message.offset} -> {message.next_offset}] {message.payload!r}")
    except KeyboardInterrupt:
        print("\nStopped")
    except KafkaError as e:
        print(f"✗ Consume failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
