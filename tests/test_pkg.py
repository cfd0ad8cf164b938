import pytest

from pyrite_installer.errors import CommandError, InstallerError
from pyrite_installer.lib.pkg import (
    FLATHUB_URL,
    PackageOptions,
    add_flathub_remote,
    install_aur_helper,
    merge_packages,
    pacman_install,
    read_hardware_packages,
    read_package_list,
    read_package_options,
    rewrite_atime,
    write_fstab,
)

GENFSTAB = """# /dev/sda2 LABEL=ROOT
UUID=1111-aaaa  /  btrfs  rw,relatime,compress=zstd:3,space_cache=v2,subvol=/@  0 0

UUID=2222-bbbb  /boot  vfat  rw,relatime,fmask=0077,dmask=0077  0 2
"""


def test_read_package_list_skips_comments(tmp_path):
    p = tmp_path / "packages.txt"
    p.write_text("# desktop\nfirefox\n\nmpv  # player\n")
    assert read_package_list(str(p)) == ["firefox", "mpv"]
    assert read_package_list(str(tmp_path / "absent.txt")) == []


def test_read_hardware_packages(tmp_path):
    p = tmp_path / "hw.json"
    p.write_text('{"gpu": "amd", "recommended_packages": ["mesa", " vulkan-radeon ", ""]}')
    assert read_hardware_packages(str(p)) == ["mesa", "vulkan-radeon"]


def test_read_hardware_packages_tolerates_garbage(tmp_path):
    p = tmp_path / "hw.json"
    p.write_text("{not json")
    assert read_hardware_packages(str(p)) == []


def test_merge_packages_dedupes_and_excludes():
    merged = merge_packages(["git", "mesa"], ["mesa", "firefox"], exclude=["git"])
    assert merged == ["mesa", "firefox"]


def test_rewrite_atime():
    assert "relatime" not in rewrite_atime(GENFSTAB, "noatime")
    assert rewrite_atime("rw,relatime", "noatime") == "rw,noatime"


def test_pacman_install_skips_empty(fake_run):
    pacman_install("/mnt", [])
    assert fake_run.calls == []


def test_write_fstab_appends_uuid_entries(fake_run, tmp_path):
    fake_run.on(["genfstab"], GENFSTAB)
    fstab = tmp_path / "etc/fstab"
    fstab.parent.mkdir()
    fstab.write_text("# Static information about the filesystems.\n")

    write_fstab(str(tmp_path), atime_policy="noatime")

    text = fstab.read_text()
    assert text.startswith("# Static information")
    assert "UUID=1111-aaaa" in text and "noatime" in text and "relatime" not in text
    assert fake_run.calls == [["genfstab", "-U", str(tmp_path)]]


def test_write_fstab_rejects_output_without_uuids(fake_run, tmp_path):
    fake_run.on(["genfstab"], "/dev/sda2 / btrfs rw 0 0\n")
    with pytest.raises(InstallerError):
        write_fstab(str(tmp_path))
    assert not (tmp_path / "etc/fstab").exists()


def test_read_package_list_tolerates_bad_bytes(tmp_path):
    p = tmp_path / "packages.txt"
    p.write_bytes(b"firefox\n\xff\xfe\n")
    assert read_package_list(str(p)) == []


def test_read_package_options(tmp_path):
    p = tmp_path / "package-config.sh"
    p.write_text(
        "#!/bin/bash\n"
        "# Pyrite Linux Package Configuration\n"
        'SELECTED_PROFILES=("desktop" "dev" )\n'
        "ENABLE_AUR=true\n"
        "ENABLE_FLATPAK=false\n"
        "TOTAL_PACKAGES=42\n"
    )
    assert read_package_options(str(p)) == PackageOptions(enable_aur=True, enable_flatpak=False)
    assert read_package_options(str(tmp_path / "absent.sh")) == PackageOptions()


def test_flathub_remote_added_in_target(fake_run):
    add_flathub_remote("/mnt")
    assert fake_run.calls == [
        ["arch-chroot", "/mnt", "flatpak", "remote-add", "--if-not-exists", "flathub", FLATHUB_URL]
    ]


def test_aur_helper_built_as_user_and_installed_as_root(fake_run):
    install_aur_helper("/mnt", "admin")
    build = "/home/admin/.cache/pyrite-aur"
    clone = fake_run.index(["arch-chroot", "/mnt", "runuser", "-u", "admin", "--", "git", "clone"])
    make = fake_run.index(["arch-chroot", "/mnt", "runuser", "-u", "admin", "--", "sh", "-c"])
    install = fake_run.index(["arch-chroot", "/mnt", "/bin/sh", "-c"])
    assert clone < make < install
    assert fake_run.calls[install][-1] == f"pacman -U --noconfirm {build}/*.pkg.tar.zst"
    assert fake_run.calls[-1] == ["arch-chroot", "/mnt", "rm", "-rf", build]


def test_aur_build_dir_removed_when_makepkg_fails(fake_run):
    fake_run.on(["arch-chroot", "/mnt", "runuser", "-u", "admin", "--", "sh"], returncode=1)
    with pytest.raises(CommandError):
        install_aur_helper("/mnt", "admin")
    assert fake_run.calls[-1] == ["arch-chroot", "/mnt", "rm", "-rf", "/home/admin/.cache/pyrite-aur"]
