"""Recording fake of ComponentClientProtocol for driver tests."""

from __future__ import annotations

from threading import Event
from typing import Any

from replicator.subscription.models import SignaturePolicy, Subscription


class FakeDescriptor:
    def __init__(self, name: str, version: str, close_error: Exception | None = None) -> None:
        self._name = name
        self._version = version
        self._close_error = close_error
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def close(self) -> None:
        self.closed = True
        if self._close_error is not None:
            raise self._close_error


class FakeComponentClient:
    """Configurable fake: set the ``*_error`` attributes to make a stage fail."""

    def __init__(self, versions: list[str] | None = None) -> None:
        self.versions: list[str] = list(versions or [])
        self.auth_error: Exception | None = None
        self.list_error: Exception | None = None
        self.descriptor_error: Exception | None = None
        self.verify_error: Exception | None = None
        self.verify_result = True
        self.transfer_error: Exception | None = None
        self.sign_error: Exception | None = None
        self.close_error: Exception | None = None
        self.public_key = b"-----BEGIN RSA PUBLIC KEY-----\nAAAA\n-----END RSA PUBLIC KEY-----\n"
        # Set on this event from inside a call to simulate a host shutdown mid-pass.
        self.cancel_during_transfer: Event | None = None

        self.auth_calls: list[Subscription] = []
        self.insecure_http_calls: list[bool] = []
        self.list_calls: list[tuple[str, str]] = []
        self.descriptor_calls: list[tuple[str, str, str]] = []
        self.verify_calls: list[list[SignaturePolicy]] = []
        self.transfer_calls: list[tuple[str, str]] = []
        self.sign_calls: list[str] = []
        self.descriptors: list[FakeDescriptor] = []

    def create_authenticated_context(
        self,
        subscription: Subscription,
        cancel_event: Event | None = None,
        *,
        insecure_http: bool = False,
    ) -> Any:
        self.auth_calls.append(subscription)
        self.insecure_http_calls.append(insecure_http)
        if self.auth_error is not None:
            raise self.auth_error
        return {"subscription": str(subscription.id), "cancel_event": cancel_event}

    def list_versions(self, context: Any, repository_url: str, component_name: str) -> list[str]:
        self.list_calls.append((repository_url, component_name))
        if self.list_error is not None:
            raise self.list_error
        return list(self.versions)

    def get_component_descriptor(self, context: Any, repository_url: str, component_name: str, version: str) -> FakeDescriptor:
        self.descriptor_calls.append((repository_url, component_name, version))
        if self.descriptor_error is not None:
            raise self.descriptor_error
        descriptor = FakeDescriptor(component_name, version, close_error=self.close_error)
        self.descriptors.append(descriptor)
        return descriptor

    def verify_signatures(self, context: Any, descriptor: FakeDescriptor, signature_policies: list[SignaturePolicy]) -> bool:
        self.verify_calls.append(signature_policies)
        if self.verify_error is not None:
            raise self.verify_error
        return self.verify_result

    def sign_destination_component(self, context: Any, descriptor: FakeDescriptor) -> bytes:
        self.sign_calls.append(descriptor.version)
        if self.sign_error is not None:
            raise self.sign_error
        return self.public_key

    def transfer_component(self, context: Any, descriptor: FakeDescriptor, destination_repository_url: str) -> None:
        self.transfer_calls.append((descriptor.version, destination_repository_url))
        if self.cancel_during_transfer is not None:
            self.cancel_during_transfer.set()
        if self.transfer_error is not None:
            raise self.transfer_error
