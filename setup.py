#!/usr/bin/env python

import setuptools

setuptools.setup(
    name="varhighlighter",
    version="0.1.0",
    description="Highlights the first occurrence of a selected snippet in a PDF.js reader and previews it on hover.",
    packages=setuptools.find_packages(include=["varhighlighter", "varhighlighter.*"]),
    package_data={"varhighlighter": ["configs/*.yaml"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=['PyYAML>=5.3',
                      'qtpy>=2.0',
                      'PyQt5>=5.15',
                      'PyQtWebEngine>=5.15',
                      'PyMuPDF>=1.23',
                      'termcolor>=1.1.0',
                      'colorama>=0.4; platform_system=="Windows"',
                      ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.10',

    entry_points={
        'console_scripts': [
            'varhighlighter = varhighlighter.main:main',
        ],
    },


)
