from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Protocol

from typing_extensions import runtime_checkable

if TYPE_CHECKING:
    from threading import Event

    from replicator.subscription.models import SignaturePolicy, Subscription


@runtime_checkable
class ComponentDescriptorHandle(Protocol):
    """An open component version fetched from a registry. Must be closed by whoever fetched it."""

    @property
    def name(self) -> str: ...

    @property
    def version(self) -> str: ...

    def close(self) -> None: ...


@runtime_checkable
class ComponentClientProtocol(Protocol):
    """Contract for the registry, signing and transfer collaborator.

    Implementations wrap a concrete component-transfer library. The reconcile
    driver depends on this protocol only, so another registry backend can be
    substituted without touching version selection or the decision logic.
    Every operation is a synchronous, bounded-timeout call; failures are
    reported by raising a ``CollaboratorError`` subclass; any other exception
    is treated by the driver as a failure of the stage that raised it.
    """

    @abstractmethod
    def create_authenticated_context(
        self,
        subscription: Subscription,
        cancel_event: Event | None = None,
        *,
        insecure_http: bool = False,
    ) -> Any:
        """Resolve credentials for the subscription's source and destination.

        Args:
            subscription: The subscription whose service account and secret references apply
            cancel_event: Set by the host on shutdown. Implementations bind it into the returned
                context and abort in-flight calls made with that context once it is set
            insecure_http: Talk plain HTTP to registries instead of HTTPS, for local test registries

        Returns:
            An opaque context handle passed back to every other operation

        Raises:
            CredentialNotFoundError: A referenced secret or service account does not exist
            PermissionDeniedError: The credentials were rejected
        """
        ...

    @abstractmethod
    def list_versions(self, context: Any, repository_url: str, component_name: str) -> list[str]:
        """List the raw version strings published for a component.

        Raises:
            RegistryUnreachableError: The registry could not be contacted
            ComponentNotFoundError: The component does not exist in the repository
        """
        ...

    @abstractmethod
    def get_component_descriptor(
        self,
        context: Any,
        repository_url: str,
        component_name: str,
        version: str,
    ) -> ComponentDescriptorHandle:
        """Fetch the descriptor of one component version. The caller closes the handle.

        Raises:
            ComponentNotFoundError: The version does not exist
            CorruptDescriptorError: The descriptor could not be decoded
        """
        ...

    @abstractmethod
    def verify_signatures(
        self,
        context: Any,
        descriptor: ComponentDescriptorHandle,
        signature_policies: list[SignaturePolicy],
    ) -> bool:
        """Verify every listed signature on the descriptor.

        Raises:
            KeyNotFoundError: A referenced public key could not be found
            DigestMismatchError: A signature did not match its key
            SignatureNameAbsentError: The descriptor carries no signature with the policy's name
        """
        ...

    @abstractmethod
    def sign_destination_component(self, context: Any, descriptor: ComponentDescriptorHandle) -> bytes:
        """Sign the replicated component in the destination and return the public key (PEM bytes).

        Raises:
            SigningError: Signing failed
        """
        ...

    @abstractmethod
    def transfer_component(
        self,
        context: Any,
        descriptor: ComponentDescriptorHandle,
        destination_repository_url: str,
    ) -> None:
        """Copy the component version and its resources to the destination repository.

        Raises:
            PartialTransferError: Some artifacts were copied before the failure
            DestinationUnreachableError: The destination registry could not be contacted
            OverwriteConflictError: The destination holds a different artifact under the same version
        """
        ...
