import factory

from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.keepalive.runner import (
    KeepaliveJob,
)
from wgpunch.signal.messages import (
    SignalMessage,
)

# Documentation ranges (RFC 5737)
TEST_NET_2 = "198.51.100"
TEST_NET_3 = "203.0.113"


class EndpointFactory(factory.Factory):
    class Meta:
        model = Endpoint

    ip = factory.Sequence(lambda n: f"{TEST_NET_3}.{n % 254 + 1}")
    mapped_port = factory.Sequence(lambda n: 40000 + n % 20000)
    local_port = factory.LazyAttribute(lambda o: o.mapped_port)


class SignalMessageFactory(factory.Factory):
    class Meta:
        model = SignalMessage

    ip = factory.Sequence(lambda n: f"{TEST_NET_2}.{n % 254 + 1}")
    mapped_port = factory.Sequence(lambda n: 40000 + n % 20000)
    local_port = factory.LazyAttribute(lambda o: o.mapped_port)
    sequence = 0


class KeepaliveJobFactory(factory.Factory):
    class Meta:
        model = KeepaliveJob

    target = factory.SubFactory(EndpointFactory)
    source_port = 51820
    interval = 28.0
    ttl = 4
    remaining_count = 20
