from setuptools import setup, find_packages

VERSION = open("postbase/VERSION").read().strip()

reqs = open("requirements.txt").read().strip().split("\n")

test_reqs = open("requirements-test.txt").read().strip().split("\n")

setup(
    name="postbase",
    version=VERSION,
    packages=find_packages(exclude=["tests.*", "tests"]),
    include_package_data=True,
    package_data={"postbase": ["VERSION", "py.typed", "templates/*.html"]},
    zip_safe=False,
    install_requires=reqs,
    extras_require={"tests": test_reqs, "systemd": ["systemd-python"]},
    entry_points={
        "console_scripts": [
            "postbase-build=postbase.cli:build",
            "postbase-check=postbase.cli:check",
            "postbase-fix-encoding=postbase.cli:fix_encoding",
            "postbase-new=postbase.cli:new",
            "postbase-publish=postbase.cli:publish",
            "postbase-serve=postbase.cli:serve",
            "postbase-config=postbase.cli:config_cli",
        ]
    },
)
