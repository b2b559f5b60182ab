import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="bootdisk",
    version="0.0.1",
    author="Gianluca Pacchiella",
    author_email="gp@ktln2.org",
    description="Trackloaded floppy images for humans",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/gipi/bootdisk",
    packages=setuptools.find_packages(exclude=['tests']),
    install_requires=[
        'capstone',
        'bitstring',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'diskbuild=bootdisk.cli:run',
        ],
    },
    scripts=[
        'scripts/diskbuild.py',
        'scripts/adfinfo.py',
    ],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GPLv2 License",
        "Operating System :: OS Independent",
    ],
)
