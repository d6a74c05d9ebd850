"""Disaster coordination workflows for CrisisFusion.

DisasterCoordinator composes the resolvers, aggregators, record store, and
change notifier into the operations a request handler calls: create, update
and re-analyze disasters, register resources, find nearby resources, verify
report images, and aggregate-and-announce social signals and official updates.

Event routing:
    disaster_created / disaster_updated / disaster_deleted / emergency_alert
        go to the broadcast topic.
    Everything else goes to the disaster's own topic (disaster-<id>).
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from config.defaults import NO_LOCATION_SENTINEL
from config.settings import ServiceConfig
from crisisfusion.aggregators.official import OfficialUpdateAggregator
from crisisfusion.aggregators.social import SocialSignalAggregator
from crisisfusion.errors import ValidationError
from crisisfusion.io.record_store import RecordStore
from crisisfusion.models.feeds import OfficialUpdate, SocialSignal
from crisisfusion.models.geo import GeocodeResult
from crisisfusion.notifier import ChangeNotifier
from crisisfusion.resolvers.geocoding import GeocodingResolver
from crisisfusion.resolvers.text_analysis import TextAnalysisResolver
from crisisfusion.utils.date_utils import utc_now_iso
from crisisfusion.utils.geo_utils import is_valid_coordinates, to_wkt_point
from crisisfusion.utils.logging_utils import get_disaster_logger
from crisisfusion.utils.scheduling import RepeatingTimer

logger = logging.getLogger(__name__)

DISASTERS = "disasters"
RESOURCES = "resources"
REPORTS = "reports"

# Record fields callers may not overwrite through update_disaster()
_PROTECTED_FIELDS = ("id", "owner_id", "created_at")


def _require(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def _location_fields(result: Optional[GeocodeResult]) -> Dict[str, Any]:
    """Record fields describing a geocode outcome (all None when unresolved)."""
    if result is None or result.coordinates is None:
        return {"location": None, "latitude": None, "longitude": None, "geocoding_source": None}
    coords = result.coordinates
    return {
        "location": to_wkt_point(coords.latitude, coords.longitude),
        "latitude": coords.latitude,
        "longitude": coords.longitude,
        "geocoding_source": result.source,
    }


class DisasterCoordinator:
    """Request-level workflows over the CrisisFusion services.

    Args:
        config: Service configuration.
        store: Record store holding disasters, resources, and reports.
        geocoding: Geocoding resolver.
        text_analysis: AI text/image resolver.
        social: Social signal aggregator.
        official: Official update aggregator.
        notifier: Change notifier for published events.
    """

    def __init__(
        self,
        config: ServiceConfig,
        store: RecordStore,
        geocoding: GeocodingResolver,
        text_analysis: TextAnalysisResolver,
        social: SocialSignalAggregator,
        official: OfficialUpdateAggregator,
        notifier: ChangeNotifier,
    ) -> None:
        self.config = config
        self.store = store
        self.geocoding = geocoding
        self.text_analysis = text_analysis
        self.social = social
        self.official = official
        self.notifier = notifier

    # ── Disasters ─────────────────────────────────────────────────────────────

    def get_disaster(self, disaster_id: str) -> Optional[Dict[str, Any]]:
        records = self.store.get(DISASTERS, {"id": disaster_id})
        return records[0] if records else None

    def list_disasters(
        self, tag: Optional[str] = None, owner_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Disasters, optionally filtered by tag and owner, newest first."""
        records = self.store.get(DISASTERS, {"owner_id": owner_id} if owner_id else None)
        if tag:
            records = [r for r in records if tag in (r.get("tags") or [])]
        return sorted(records, key=lambda r: r.get("created_at", ""), reverse=True)

    def create_disaster(
        self,
        title: str,
        description: str,
        location_name: Optional[str] = None,
        tags: Sequence[str] = (),
        owner_id: str = "anonymous",
    ) -> Dict[str, Any]:
        """Create, enrich, persist, and announce a disaster.

        When no location name is given it is extracted from the description.
        The location is geocoded unless extraction found nothing. The
        description analysis is stored on the record.

        Raises:
            ValidationError: If title or description is missing, or
                location_name is given but is not a string.
        """
        title = _require(title, "title")
        description = _require(description, "description")
        if location_name is not None and not isinstance(location_name, str):
            raise ValidationError("location_name must be a string")
        disaster_id = str(uuid.uuid4())
        log = get_disaster_logger("coordinator", disaster_id)

        if location_name and location_name.strip():
            final_location = location_name.strip()
            extraction_source = "provided"
        else:
            extraction = self.text_analysis.extract_location(description)
            final_location = extraction.location
            extraction_source = extraction.source
            log.info("Location extracted from description: %s", final_location)

        geocoded = None
        if final_location != NO_LOCATION_SENTINEL:
            geocoded = self.geocoding.geocode(final_location)
            log.info("Location geocoded: %s via %s", final_location, geocoded.source)

        analysis = self.text_analysis.analyze_disaster_description(description)

        if isinstance(tags, str):
            tags = [tags]
        record: Dict[str, Any] = {
            "id": disaster_id,
            "title": title,
            "location_name": final_location,
            "location_extraction_source": extraction_source,
            "description": description,
            "tags": list(tags),
            "owner_id": owner_id,
            "created_at": utc_now_iso(),
            "severity_level": analysis.severity_level,
            "disaster_type": analysis.disaster_type,
            "urgency_indicator": analysis.urgency_indicator,
            "affected_areas": analysis.affected_areas,
            "key_needs": analysis.key_needs,
            "analysis_source": analysis.source,
        }
        record.update(_location_fields(geocoded))
        disaster = self.store.put(DISASTERS, record)

        self.notifier.notify("disaster_created", {"disaster": disaster, "created_by": owner_id})
        log.info("Disaster created: %s", title)
        return disaster

    def update_disaster(self, disaster_id: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply field updates to a disaster and announce them.

        A new description without a location name triggers location
        extraction; a changed location name is re-geocoded.

        Raises:
            ValidationError: If the disaster does not exist.
        """
        current = self.get_disaster(disaster_id)
        if current is None:
            raise ValidationError(f"No disaster found with ID: {disaster_id}")
        log = get_disaster_logger("coordinator", disaster_id)

        changes = {k: v for k, v in dict(updates).items() if k not in _PROTECTED_FIELDS}
        if changes.get("description") and not changes.get("location_name"):
            extraction = self.text_analysis.extract_location(changes["description"])
            if extraction.found:
                changes["location_name"] = extraction.location

        new_location = changes.get("location_name")
        if new_location and new_location != current.get("location_name"):
            geocoded = self.geocoding.geocode(new_location)
            if geocoded.coordinates is not None:
                changes.update(_location_fields(geocoded))
            log.info("Location re-geocoded: %s via %s", new_location, geocoded.source)

        changes["updated_at"] = utc_now_iso()
        disaster = self.store.put(DISASTERS, {**current, **changes})

        self.notifier.notify(
            "disaster_updated",
            {"disaster": disaster, "updated_fields": sorted(changes)},
        )
        log.info("Disaster updated: %s", ", ".join(sorted(changes)))
        return disaster

    def reanalyze_disaster(self, disaster_id: str) -> Dict[str, Any]:
        """Run description analysis again for a stored disaster and save the fields.

        Raises:
            ValidationError: If the disaster does not exist or has no description.
        """
        current = self.get_disaster(disaster_id)
        if current is None:
            raise ValidationError(f"No disaster found with ID: {disaster_id}")
        description = _require(current.get("description"), "description")

        analysis = self.text_analysis.analyze_disaster_description(description)
        changes = {
            "severity_level": analysis.severity_level,
            "disaster_type": analysis.disaster_type,
            "urgency_indicator": analysis.urgency_indicator,
            "affected_areas": analysis.affected_areas,
            "key_needs": analysis.key_needs,
            "analysis_source": analysis.source,
            "analyzed_at": utc_now_iso(),
        }
        disaster = self.store.put(DISASTERS, {**current, **changes})

        self.notifier.notify(
            "disaster_updated",
            {"disaster": disaster, "updated_fields": sorted(changes)},
        )
        get_disaster_logger("coordinator", disaster_id).info(
            "Disaster re-analyzed: severity=%s type=%s", analysis.severity_level, analysis.disaster_type
        )
        return disaster

    def delete_disaster(self, disaster_id: str) -> bool:
        """Delete a disaster and announce it.

        Raises:
            ValidationError: If the disaster does not exist.
        """
        if not self.store.delete(DISASTERS, disaster_id):
            raise ValidationError(f"No disaster found with ID: {disaster_id}")
        self.notifier.notify("disaster_deleted", {"disaster_id": disaster_id})
        get_disaster_logger("coordinator", disaster_id).info("Disaster deleted")
        return True

    # ── Resources ─────────────────────────────────────────────────────────────

    def create_resource(
        self,
        disaster_id: str,
        name: str,
        resource_type: str,
        location_name: str,
    ) -> Dict[str, Any]:
        """Geocode, persist, and announce a field resource (shelter, hospital, ...).

        Raises:
            ValidationError: If any argument is blank.
        """
        disaster_id = _require(disaster_id, "disaster_id")
        name = _require(name, "name")
        resource_type = _require(resource_type, "resource_type")
        location_name = _require(location_name, "location_name")

        geocoded = self.geocoding.geocode(location_name)
        record: Dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "disaster_id": disaster_id,
            "name": name,
            "type": resource_type,
            "location_name": location_name,
            "created_at": utc_now_iso(),
        }
        record.update(_location_fields(geocoded))
        resource = self.store.put(RESOURCES, record)

        self.notifier.notify("resource_created", {"resource": resource}, disaster_id=disaster_id)
        return resource

    def find_nearby_resources(
        self,
        disaster_id: str,
        latitude: float,
        longitude: float,
        radius_km: Optional[float] = None,
        resource_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Resources of a disaster within radius_km of a point, nearest first.

        Each returned record gains ``distance_km`` rounded to 0.01 km.
        Resources without coordinates are skipped.

        Raises:
            ValidationError: On invalid coordinates or a non-positive radius.
        """
        radius_km = self.config.nearby_radius_km if radius_km is None else radius_km
        if not is_valid_coordinates(latitude, longitude):
            raise ValidationError(f"Invalid coordinates: ({latitude!r}, {longitude!r})")
        if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) or radius_km <= 0:
            raise ValidationError(f"radius_km must be a positive number, got {radius_km!r}")

        nearby: List[Tuple[float, Dict[str, Any]]] = []
        for resource in self.store.get(RESOURCES, {"disaster_id": disaster_id}):
            if resource_type and resource.get("type") != resource_type:
                continue
            lat, lon = resource.get("latitude"), resource.get("longitude")
            if not is_valid_coordinates(lat, lon):
                continue
            distance = self.geocoding.calculate_distance(latitude, longitude, lat, lon)
            if distance <= radius_km:
                resource["distance_km"] = round(distance, 2)
                nearby.append((distance, resource))

        nearby.sort(key=lambda pair: pair[0])
        resources = [r for _, r in nearby]

        self.notifier.notify(
            "nearby_resources_updated",
            {
                "resources": resources,
                "center": {"latitude": latitude, "longitude": longitude},
                "radius_km": radius_km,
            },
            disaster_id=disaster_id,
        )
        return resources

    # ── Verification ──────────────────────────────────────────────────────────

    def verify_report_image(
        self,
        disaster_id: str,
        image_url: str,
        context: str = "",
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Verify a report image and store the outcome as a report record.

        The report is "suspicious" when manipulation was detected, else "verified".
        """
        verification = self.text_analysis.verify_image_authenticity(image_url, context)
        report = self.store.put(
            REPORTS,
            {
                "id": str(uuid.uuid4()),
                "disaster_id": disaster_id,
                "user_id": user_id,
                "image_url": image_url,
                "content": context,
                "verification_status": verification.verification_status,
                "verification": verification.to_dict(),
                "created_at": utc_now_iso(),
            },
        )
        self.notifier.notify(
            "image_verification_completed",
            {"report_id": report["id"], "image_url": image_url, "verification": verification.to_dict()},
            disaster_id=disaster_id,
        )
        get_disaster_logger("coordinator", disaster_id).info(
            "Image verification completed: %s", verification.verification_status
        )
        return report

    # ── Feeds ─────────────────────────────────────────────────────────────────

    def social_reports(self, disaster_id: str, keywords: Sequence[str] = ()) -> List[SocialSignal]:
        reports = self.social.get_reports(disaster_id, keywords)
        self.notifier.notify(
            "social_media_updated",
            {"reports": [r.to_dict() for r in reports], "keywords": list(keywords)},
            disaster_id=disaster_id,
        )
        return reports

    def priority_alerts(self, disaster_id: str) -> List[SocialSignal]:
        alerts = self.social.get_priority_alerts(disaster_id)
        if alerts:
            self.notifier.notify(
                "priority_alert",
                {"alerts": [a.to_dict() for a in alerts]},
                disaster_id=disaster_id,
            )
        return alerts

    def official_updates(
        self, disaster_id: str, keywords: Sequence[str] = ()
    ) -> List[OfficialUpdate]:
        updates = self.official.get_updates(disaster_id, keywords)
        self.notifier.notify(
            "official_updates_updated",
            {"updates": [u.to_dict() for u in updates], "keywords": list(keywords)},
            disaster_id=disaster_id,
        )
        return updates

    def emergency_alerts(self, keywords: Sequence[str] = ()) -> List[OfficialUpdate]:
        alerts = self.official.get_emergency_alerts(keywords)
        if alerts:
            self.notifier.notify("emergency_alert", {"alerts": [a.to_dict() for a in alerts]})
        return alerts

    def refresh_official_updates(
        self, disaster_id: str, keywords: Sequence[str] = ()
    ) -> List[OfficialUpdate]:
        updates = self.official.refresh_updates(disaster_id, keywords)
        self.notifier.notify(
            "official_updates_refreshed",
            {"updates": [u.to_dict() for u in updates]},
            disaster_id=disaster_id,
        )
        return updates

    def start_realtime_simulation(self, disaster_id: str) -> List[RepeatingTimer]:
        """Start simulated social and official live feeds announced on the disaster topic.

        Returns:
            The two running timers; cancel them to stop the feeds.
        """
        social_timer = self.social.start_simulated_feed(
            disaster_id,
            lambda signal: self.notifier.notify(
                "social_media_realtime", {"report": signal.to_dict()}, disaster_id=disaster_id
            ),
        )
        official_timer = self.official.start_simulated_push(
            disaster_id,
            lambda update: self.notifier.notify(
                "official_update_realtime", {"update": update.to_dict()}, disaster_id=disaster_id
            ),
        )
        return [social_timer, official_timer]
