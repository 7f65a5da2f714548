"""
Tests for core.classifier module.
"""
import pytest
import os
from core.classifier import NameClassifier, classify, is_image, split_name, IMAGE_EXTENSIONS


class TestClassify:
    """Tests for the copy-naming rules."""

    @pytest.mark.parametrize("stem,expected", [
        ("Photo - Copy", "Photo"),
        ("Photo - Copy (3)", "Photo"),
        ("Photo - copy", "Photo"),
        ("Photo - COPY (12)", "Photo"),
        ("Photo - Copia", "Photo"),
        ("Photo - Copia (2)", "Photo"),
        ("Copy of Vacation", "Vacation"),
        ("copy of Vacation", "Vacation"),
        ("Copia di Festa", "Festa"),
        ("Image (2)", "Image"),
        ("Image (10)", "Image"),
    ])
    def test_matches(self, stem, expected):
        """Test each naming convention yields the original stem."""
        assert classify(stem) == expected

    @pytest.mark.parametrize("stem", [
        "Image",
        "Image (1)",
        "Image (0)",
        "Image(2)",
        "",
        " - Copy",
        "Copy of ",
        "Photo Copy",
        "Photocopy",
    ])
    def test_no_match(self, stem):
        """Test names that are not copies yield None."""
        assert classify(stem) is None

    def test_copy_marker_wins_over_numeric_suffix(self):
        """Test 'Name - Copy (3)' strips the whole marker, not just '(3)'."""
        assert classify("Photo - Copy (3)") == "Photo"

    def test_numbered_name_with_copy_marker(self):
        """Test a numbered original copied again."""
        assert classify("Photo (2) - Copy") == "Photo (2)"

    def test_deterministic(self):
        """Test classification is repeatable."""
        for stem in ["Photo - Copy", "Image (2)", "Image", "Copy of X"]:
            assert classify(stem) == classify(stem)

    def test_never_touches_disk(self, tmp_path, monkeypatch):
        """Test classification does not depend on the working directory."""
        monkeypatch.chdir(tmp_path)
        assert classify("Photo - Copy") == "Photo"
        assert list(tmp_path.iterdir()) == []


class TestNameClassifierConfig:
    """Tests for the configurable numeric-suffix rule."""

    def test_numeric_suffix_disabled(self):
        """Test 'Name (N)' is ignored when the rule is off."""
        classifier = NameClassifier(numeric_suffix=False)
        assert classifier.classify("Image (2)") is None
        assert classifier.classify("Image - Copy (2)") == "Image"

    def test_min_copy_number(self):
        """Test raising the smallest accepted N."""
        classifier = NameClassifier(min_copy_number=3)
        assert classifier.classify("Image (2)") is None
        assert classifier.classify("Image (3)") == "Image"

    def test_original_path_for(self):
        """Test the original keeps the copy's directory and extension."""
        classifier = NameClassifier()
        path = os.path.join("photos", "trip", "Beach - Copy.JPG")
        assert classifier.original_path_for(path) == os.path.join("photos", "trip", "Beach.JPG")

    def test_original_path_for_non_copy(self):
        """Test non-copies have no original."""
        assert NameClassifier().original_path_for("photos/Beach.jpg") is None


class TestHelpers:
    """Tests for extension and path helpers."""

    @pytest.mark.parametrize("name", ["a.jpg", "a.JPEG", "a.png", "a.heic", "a.CR2", "a.dng", "a.tiff"])
    def test_is_image(self, name):
        """Test recognised extensions, case-insensitively."""
        assert is_image(name)

    @pytest.mark.parametrize("name", ["a.txt", "a.mp4", "a", "jpg", "a.jpg.bak"])
    def test_is_not_image(self, name):
        """Test everything else is rejected."""
        assert not is_image(name)

    def test_extension_set(self):
        """Test the raw formats are part of the set."""
        assert {".arw", ".cr2", ".nef", ".orf", ".rw2", ".dng"} <= IMAGE_EXTENSIONS

    def test_split_name(self):
        """Test splitting into directory, stem and extension."""
        path = os.path.join("dir", "Photo - Copy.jpg")
        assert split_name(path) == ("dir", "Photo - Copy", ".jpg")
