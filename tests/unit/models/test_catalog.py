"""Unit tests for the option catalog."""

from particlectl.models.catalog import (
    ARCH_ALIASES,
    ARCHITECTURES,
    COMMON_ARCHITECTURES,
    PROFILE_RECOMMENDATIONS,
    Axis,
    addons_for,
    catalog_keys,
    find_entry,
    get_catalog,
)


class TestCatalogTables:
    """Tests for the static catalog contents."""

    def test_architecture_order_is_preference_order(self) -> None:
        """Architectures keep their display order."""
        assert catalog_keys(Axis.ARCHITECTURE) == (
            "x86_64",
            "aarch64",
            "ppc64-le",
            "s390x",
            "arm",
            "i386",
            "mips64el",
            "mipsel",
        )

    def test_common_architectures_are_catalog_prefix(self) -> None:
        """Common architectures are the first catalog entries."""
        assert COMMON_ARCHITECTURES == ARCHITECTURES[:2]

    def test_distributions(self) -> None:
        """Distribution catalog lists fedora first."""
        assert catalog_keys(Axis.DISTRIBUTION) == ("fedora", "arch", "debian")

    def test_profiles(self) -> None:
        """Profile catalog includes obs."""
        assert catalog_keys(Axis.PROFILE) == ("desktop", "gnome", "kde", "obs")

    def test_keys_unique_per_axis(self) -> None:
        """No axis lists a key twice."""
        for axis in Axis:
            keys = catalog_keys(axis)
            assert len(keys) == len(set(keys))

    def test_aliases_resolve_to_catalog_keys(self) -> None:
        """Every alias points at a listed architecture."""
        keys = catalog_keys(Axis.ARCHITECTURE)
        assert all(target in keys for target in ARCH_ALIASES.values())

    def test_recommendations_point_at_profiles(self) -> None:
        """Recommended bases are profile keys."""
        keys = catalog_keys(Axis.PROFILE)
        for name, recommendation in PROFILE_RECOMMENDATIONS.items():
            assert name in keys
            assert recommendation.recommended_base in keys


class TestLookup:
    """Tests for catalog lookup helpers."""

    def test_get_catalog_per_axis(self) -> None:
        """Each axis has its own catalog."""
        assert get_catalog(Axis.ARCHITECTURE) is ARCHITECTURES
        assert get_catalog(Axis.DISTRIBUTION) is not get_catalog(Axis.PROFILE)

    def test_find_entry_exact(self) -> None:
        """find_entry returns the matching entry."""
        entry = find_entry(Axis.DISTRIBUTION, "arch")
        assert entry is not None
        assert entry.description == "Arch Linux"

    def test_find_entry_is_case_sensitive(self) -> None:
        """Lookup does not fold case."""
        assert find_entry(Axis.DISTRIBUTION, "Fedora") is None

    def test_find_entry_missing(self) -> None:
        """Unknown keys yield None."""
        assert find_entry(Axis.PROFILE, "xfce") is None

    def test_addons_for_desktop(self) -> None:
        """Desktop add-ons are listed in catalog order."""
        assert addons_for("desktop") == ["gnome", "kde"]

    def test_addons_for_profile_without_addons(self) -> None:
        """Profiles nothing recommends have no add-ons."""
        assert addons_for("obs") == []
