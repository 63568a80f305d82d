"""
Canonical cinema registry.

Static, config-backed lookups from canonical venue id to venue metadata,
legacy id aliases, extraction job id, orchestration id and booking-domain
ownership. No I/O and no mutation after construction.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache

from cinefeed.errors import UnknownVenue
from cinefeed.utils.urls import host_matches, url_host


@dataclass(frozen=True)
class VenueDefinition:
    """A venue as declared in configuration."""

    id: str
    name: str
    short_name: str
    website: str
    job_id: str  # key into cinefeed.scrapers.SCRAPER_REGISTRY
    chain: str | None = None
    area: str | None = None
    address: str | None = None
    postcode: str | None = None
    coordinates: tuple[float, float] | None = None  # (lat, lng)
    features: tuple[str, ...] = ()
    active: bool = True
    legacy_ids: tuple[str, ...] = ()
    job_config: Mapping[str, str] = field(default_factory=dict)
    orchestration_id: str | None = None
    booking_domains: tuple[str, ...] = ()
    min_screenings: int = 1

    @property
    def owner(self) -> str:
        """The chain id, or the venue's own id for independents."""
        return self.chain or self.id


class CinemaRegistry:
    """
    Lookup service over a fixed set of venue definitions.

    Args:
        venues: Venue definitions; ids and legacy ids must be unique.
        chain_domains: Booking domains owned by each chain, including chains
            with no registered venues (so their links are still recognised).
        agnostic_domains: Ticketing platforms shared by many venues; links to
            them are never treated as cross-venue.
    """

    def __init__(
        self,
        venues: Iterable[VenueDefinition],
        chain_domains: Mapping[str, Sequence[str]] | None = None,
        agnostic_domains: Iterable[str] = (),
    ) -> None:
        self._by_id: dict[str, VenueDefinition] = {}
        self._legacy: dict[str, str] = {}

        for venue in venues:
            if venue.id in self._by_id or venue.id in self._legacy:
                raise ValueError(f"Duplicate venue id: {venue.id}")
            self._by_id[venue.id] = venue

        for venue in self._by_id.values():
            for legacy_id in venue.legacy_ids:
                if legacy_id in self._by_id or legacy_id in self._legacy:
                    raise ValueError(f"Legacy id {legacy_id!r} is already in use")
                self._legacy[legacy_id] = venue.id

        self._agnostic = tuple(d.lower() for d in agnostic_domains)
        self._domain_owner: dict[str, str] = {}
        for chain, domains in (chain_domains or {}).items():
            for domain in domains:
                self._register_domain(domain, chain)
        for venue in self._by_id.values():
            for domain in venue.booking_domains:
                self._register_domain(domain, venue.owner)
            website_host = url_host(venue.website)
            if website_host:
                self._register_domain(website_host, venue.owner)

    def _register_domain(self, domain: str, owner: str) -> None:
        domain = domain.lower()
        existing = self._domain_owner.get(domain)
        if existing is not None and existing != owner:
            raise ValueError(f"Domain {domain!r} registered to both {existing!r} and {owner!r}")
        self._domain_owner[domain] = owner

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def resolve_canonical(self, venue_id: str) -> str:
        """Canonical id for a canonical or legacy id. Idempotent."""
        if venue_id in self._by_id:
            return venue_id
        canonical = self._legacy.get(venue_id)
        if canonical is None:
            raise UnknownVenue(venue_id)
        return canonical

    def get_venue(self, venue_id: str) -> VenueDefinition | None:
        """Venue definition by canonical (or legacy) id, or None."""
        try:
            return self._by_id[self.resolve_canonical(venue_id)]
        except UnknownVenue:
            return None

    def require_venue(self, venue_id: str) -> VenueDefinition:
        return self._by_id[self.resolve_canonical(venue_id)]

    def is_legacy_id(self, venue_id: str) -> bool:
        return venue_id in self._legacy

    def legacy_mappings(self) -> dict[str, str]:
        return dict(self._legacy)

    def get_extraction_job_id(self, venue_id: str) -> str:
        return self.require_venue(venue_id).job_id

    def map_to_orchestration_id(self, venue_id: str) -> str:
        """
        Id the external scheduler uses for this venue.

        An explicit override wins; chain venues are scheduled as their chain;
        everything else uses the canonical id.
        """
        venue = self.require_venue(venue_id)
        return venue.orchestration_id or venue.chain or venue.id

    def venues_for_orchestration_id(self, orchestration_id: str) -> list[VenueDefinition]:
        """Reverse of map_to_orchestration_id, restricted to active venues."""
        return [
            v for v in self.active_venues()
            if self.map_to_orchestration_id(v.id) == orchestration_id
        ]

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def all_venues(self) -> list[VenueDefinition]:
        return list(self._by_id.values())

    def active_venues(self) -> list[VenueDefinition]:
        return [v for v in self._by_id.values() if v.active]

    def venues_by_chain(self, chain: str, active_only: bool = True) -> list[VenueDefinition]:
        return [
            v for v in self._by_id.values()
            if v.chain == chain and (v.active or not active_only)
        ]

    def chains(self) -> list[str]:
        return sorted({v.chain for v in self._by_id.values() if v.chain})

    # ------------------------------------------------------------------
    # Booking-domain ownership
    # ------------------------------------------------------------------

    def owner_of(self, venue_id: str) -> str:
        return self.require_venue(venue_id).owner

    def booking_url_owner(self, url: str | None) -> str | None:
        """
        Owner (chain or independent venue id) of a booking URL's domain.

        Returns None for unknown or venue-agnostic domains. The most specific
        registered domain wins, so a ticketing subdomain can be agnostic while
        its parent belongs to a venue.
        """
        host = url_host(url)
        if host is None:
            return None

        best_owner: str | None = None
        best_len = -1
        for domain in self._agnostic:
            if host_matches(host, domain) and len(domain) > best_len:
                best_owner, best_len = None, len(domain)
        for domain, owner in self._domain_owner.items():
            if host_matches(host, domain) and len(domain) > best_len:
                best_owner, best_len = owner, len(domain)
        return best_owner

    def is_contaminated(self, venue_id: str, url: str | None) -> str | None:
        """Foreign owner of ``url`` when it belongs to another venue/chain, else None."""
        owner = self.booking_url_owner(url)
        if owner is None or owner == self.owner_of(venue_id):
            return None
        return owner


@lru_cache(maxsize=1)
def get_registry() -> CinemaRegistry:
    """Registry built from the bundled venue configuration."""
    from cinefeed.venues import AGNOSTIC_DOMAINS, CHAIN_DOMAINS, VENUES

    return CinemaRegistry(VENUES, CHAIN_DOMAINS, AGNOSTIC_DOMAINS)
