#!/usr/bin/env python3
"""
publish.py - Publish messages to a Kafka 0.7 broker

What this example demonstrates:
- Opening a BrokerConnection for one topic partition
- Publishing plain messages
- Publishing a gzip-compressed batch as one envelope message
- Handling connection errors

Prerequisites:
    - Kafka 0.7 broker running on localhost:9092
    - pykafka07 installed: pip install -e .

Environment:
    KAFKA_BROKERS    Broker addresses (default: localhost:9092)
    KAFKA_TOPIC      Topic to publish to (default: test)
    KAFKA_PARTITION  Partition to publish to (default: 0)

Run with:
    python publish.py "first message" "second message"
"""

import logging
import os
import sys

from pykafka07 import BrokerConnection, KafkaError, ProducerConfig, Publisher


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    brokers = os.environ.get("KAFKA_BROKERS", "localhost:9092")
    topic = os.environ.get("KAFKA_TOPIC", "test")
    partition = int(os.environ.get("KAFKA_PARTITION", "0"))
    payloads = sys.argv[1:] or ["testing", "multiple", "messages"]

    try:
        with BrokerConnection(topic, partition, brokers) as conn:
            # One message per payload
            count = Publisher(conn).publish(*payloads)
            print(f"✓ Published {count} messages to {topic}/{partition}")

            # Same payloads again, as one compressed envelope
            gzip_publisher = Publisher(conn, config=ProducerConfig(compression="gzip"))
            count = gzip_publisher.publish(*payloads)
            print(f"✓ Published {count} gzip-compressed messages to {topic}/{partition}")
    except KafkaError as e:
        print(f"✗ Publish failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
