"""
PoolParty MQTT Pool — units are client connections to one MQTT broker.

A broker's connection limit (mosquitto's ``max_connections``) is the shared
cap both participants race on. paho-mqtt runs each client on its own
network thread; callbacks there only flip unit state, the unit deque is
touched from the event loop alone.
"""

import logging
import uuid

import paho.mqtt.client as mqtt

from .pool import ResourcePool, Unit, OPEN, DEAD

log = logging.getLogger("poolparty.mqtt")


class MqttPool(ResourcePool):
    """Pool of paho-mqtt client connections."""

    def __init__(self, config, mqtt_host: str = "127.0.0.1", mqtt_port: int = 1883,
                 mqtt_user: str = None, mqtt_pass: str = None, recorder=None,
                 keepalive: int = 60):
        super().__init__(config, recorder)
        self.mqtt_host = mqtt_host
        self.mqtt_port = mqtt_port
        self.mqtt_user = mqtt_user
        self.mqtt_pass = mqtt_pass
        self.keepalive = keepalive
        self.opened = 0
        self.failed = 0

    def consume_one(self):
        unit = Unit()
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2,
                             client_id=f"poolparty-{uuid.uuid4().hex[:12]}",
                             userdata=unit)
        if self.mqtt_user and self.mqtt_pass:
            client.username_pw_set(self.mqtt_user, self.mqtt_pass)
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        unit.handle = client
        self._units.append(unit)
        try:
            client.connect_async(self.mqtt_host, self.mqtt_port, self.keepalive)
            client.loop_start()
        except (OSError, ValueError) as e:
            self.failed += 1
            unit.state = DEAD
            log.debug(f"💀 client {unit.id} could not start: {e}")

    def _on_connect(self, client, unit, flags, rc, properties=None):
        if unit.state == DEAD:
            # Released while still connecting
            client.disconnect()
            return
        if rc.is_failure:
            self.failed += 1
            log.debug(f"💀 client {unit.id} refused: {rc}")
            self._kill(client, unit)
            return
        unit.state = OPEN
        self.opened += 1

    def _on_connect_fail(self, client, unit):
        self.failed += 1
        log.debug(f"💀 client {unit.id} connect failed")
        self._kill(client, unit)

    def _on_disconnect(self, client, unit, flags, rc, properties=None):
        self._kill(client, unit)

    def _kill(self, client, unit):
        unit.state = DEAD
        # Stops the network thread (and its reconnect attempts) from inside it
        client.loop_stop()

    def release_one(self):
        if not self._units:
            return
        unit = self._units.popleft()
        unit.state = DEAD
        unit.handle.disconnect()

    async def aclose(self):
        await super().aclose()
        log.info(f"🔌 closed pool for {self.mqtt_host}:{self.mqtt_port} "
                 f"(opened {self.opened}, failed {self.failed})")

    def stats(self) -> dict:
        base = super().stats()
        base.update({
            "broker": f"{self.mqtt_host}:{self.mqtt_port}",
            "opened": self.opened,
            "failed": self.failed,
        })
        return base
