"""Unit tests for the ordered profile set."""

import pytest
from particlectl.models.profiles import ProfileSet


class TestProfileSet:
    """Tests for ProfileSet."""

    def test_parse_keeps_order(self) -> None:
        """Parsed profiles keep their given order."""
        assert list(ProfileSet.parse("gnome,desktop")) == ["gnome", "desktop"]

    def test_parse_empty(self) -> None:
        """An empty string is the empty set."""
        profiles = ProfileSet.parse("")
        assert len(profiles) == 0
        assert profiles.joined() == ""
        assert not profiles

    def test_duplicates_collapse_to_first(self) -> None:
        """Duplicates keep their first position."""
        assert ProfileSet.parse("desktop,gnome,desktop").joined() == "desktop,gnome"

    def test_equality_is_order_sensitive(self) -> None:
        """Sets with the same names in another order differ."""
        assert ProfileSet(["desktop", "gnome"]) == ProfileSet(["desktop", "gnome"])
        assert ProfileSet(["desktop", "gnome"]) != ProfileSet(["gnome", "desktop"])

    def test_contains(self) -> None:
        """Membership checks names."""
        profiles = ProfileSet(["desktop", "obs"])
        assert "obs" in profiles
        assert "kde" not in profiles

    def test_with_profile_appends(self) -> None:
        """Adding without a position appends."""
        assert ProfileSet(["desktop"]).with_profile("obs").joined() == "desktop,obs"

    def test_with_profile_at_position(self) -> None:
        """Adding at a position inserts there."""
        profiles = ProfileSet(["desktop", "gnome"]).with_profile("obs", 1)
        assert profiles.joined() == "desktop,obs,gnome"

    def test_with_profile_out_of_range_appends(self) -> None:
        """A position past the end appends."""
        assert ProfileSet(["desktop"]).with_profile("obs", 5).joined() == "desktop,obs"

    def test_with_existing_profile_is_noop(self) -> None:
        """Adding a present name returns an equal set."""
        profiles = ProfileSet(["obs", "desktop"])
        assert profiles.with_profile("obs", 1) == profiles

    def test_without(self) -> None:
        """Removal drops only the named profile."""
        assert ProfileSet(["desktop", "obs", "gnome"]).without("obs").joined() == "desktop,gnome"

    def test_index(self) -> None:
        """index reports the position of a name."""
        assert ProfileSet(["desktop", "obs"]).index("obs") == 1
        with pytest.raises(ValueError):
            ProfileSet(["desktop"]).index("obs")

    def test_immutable_operations_return_new_sets(self) -> None:
        """The original set is unchanged by with_profile and without."""
        profiles = ProfileSet(["desktop"])
        profiles.with_profile("gnome")
        profiles.without("desktop")
        assert profiles.joined() == "desktop"

    def test_str_and_repr(self) -> None:
        """str is the canonical join."""
        profiles = ProfileSet(["desktop", "kde"])
        assert str(profiles) == "desktop,kde"
        assert repr(profiles) == "ProfileSet(['desktop', 'kde'])"
