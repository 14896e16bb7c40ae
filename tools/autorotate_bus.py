#!/usr/bin/env python3
"""
System D-Bus session for iio-sensor-proxy.

Repo source: sway-autorotate/tools/autorotate_bus.py

iio-sensor-proxy ties ClaimAccelerometer to the D-Bus connection that made
the call, so the claim, the capability query and the PropertiesChanged match
all go through one long-lived connection owned by BusSession. Claim/query
calls happen on the main thread before start_dispatch() runs the GLib loop.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

import dbus
import dbus.exceptions
from dbus.mainloop.glib import DBusGMainLoop
from gi.repository import GLib

from autorotate_common import describe_exc, log_event
from autorotate_errors import (
    BusConnectionError,
    ClaimError,
    InitialOrientationError,
    QueryError,
    ReleaseError,
    ResolutionError,
    SubscriptionError,
)


SENSOR_PROXY_NAME = "net.hadess.SensorProxy"
SENSOR_PROXY_PATH = "/net/hadess/SensorProxy"
SENSOR_PROXY_IFACE = "net.hadess.SensorProxy"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"
PROPERTIES_CHANGED = "PropertiesChanged"


class SensorProxy:
    """
    Handle on iio-sensor-proxy's singleton object.

    `iface` answers the net.hadess.SensorProxy methods and `props` the
    org.freedesktop.DBus.Properties methods for the same object.
    """

    def __init__(self, iface: Any, props: Any) -> None:
        self.iface = iface
        self.props = props

    def has_accelerometer(self) -> bool:
        try:
            return bool(self.props.Get(SENSOR_PROXY_IFACE, "HasAccelerometer"))
        except dbus.exceptions.DBusException as exc:
            raise QueryError(describe_exc(exc)) from exc

    def accelerometer_orientation(self) -> str:
        try:
            return str(self.props.Get(SENSOR_PROXY_IFACE, "AccelerometerOrientation"))
        except dbus.exceptions.DBusException as exc:
            raise InitialOrientationError(describe_exc(exc)) from exc

    def claim_accelerometer(self) -> None:
        try:
            self.iface.ClaimAccelerometer()
        except dbus.exceptions.DBusException as exc:
            raise ClaimError(describe_exc(exc)) from exc

    def release_accelerometer(self) -> bool:
        # Runs during shutdown: report, never raise.
        try:
            self.iface.ReleaseAccelerometer()
        except dbus.exceptions.DBusException as exc:
            err = ReleaseError(describe_exc(exc))
            log_event("release_failed", stage=err.stage, error=str(err))
            return False
        return True


class BusSession:
    def __init__(self, bus: Any) -> None:
        self.bus = bus
        self.loop: GLib.MainLoop | None = None
        self.thread: threading.Thread | None = None

    @classmethod
    def connect(cls, open_bus: Callable[[], Any] | None = None) -> BusSession:
        DBusGMainLoop(set_as_default=True)
        try:
            bus = (open_bus or dbus.SystemBus)()
        except dbus.exceptions.DBusException as exc:
            raise BusConnectionError(describe_exc(exc)) from exc
        return cls(bus)

    def resolve_sensor_service(self) -> SensorProxy:
        try:
            obj = self.bus.get_object(SENSOR_PROXY_NAME, SENSOR_PROXY_PATH)
        except dbus.exceptions.DBusException as exc:
            raise ResolutionError(describe_exc(exc)) from exc
        return SensorProxy(
            iface=dbus.Interface(obj, dbus_interface=SENSOR_PROXY_IFACE),
            props=dbus.Interface(obj, dbus_interface=PROPERTIES_IFACE),
        )

    def subscribe_orientation_changes(self, deliver: Callable[..., None]) -> Any:
        """
        Install the PropertiesChanged match for iio-sensor-proxy.

        `deliver` gets the raw signal body as positional arguments, so bodies
        of an unexpected shape still reach the decoder instead of failing
        inside dbus-python's dispatch.
        """

        try:
            return self.bus.add_signal_receiver(
                deliver,
                signal_name=PROPERTIES_CHANGED,
                dbus_interface=PROPERTIES_IFACE,
                bus_name=SENSOR_PROXY_NAME,
                path=SENSOR_PROXY_PATH,
            )
        except dbus.exceptions.DBusException as exc:
            raise SubscriptionError(describe_exc(exc)) from exc

    def start_dispatch(self) -> threading.Thread:
        if self.thread and self.thread.is_alive():
            return self.thread
        self.loop = GLib.MainLoop()
        self.thread = threading.Thread(target=self.loop.run, name="dbus-dispatch", daemon=True)
        self.thread.start()
        return self.thread

    def stop_dispatch(self) -> None:
        if self.loop is not None:
            self.loop.quit()
        self.loop = None
        self.thread = None
