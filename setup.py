from setuptools import setup

with open('README.rst') as file:
    long_description = file.read()

setup(
    name='mv2h',
    version='0.1',
    description='Joint evaluation of multi-pitch detection, voice separation, '
                'metrical alignment, note value detection and harmonic analysis.',
    packages=['mv2h'],
    long_description=long_description,
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python",
        'Development Status :: 4 - Beta',
        "Intended Audience :: Science/Research",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
        "Programming Language :: Python :: 3",
    ],
    keywords='music transcription evaluation mir',
    license='MIT',
    python_requires='>=3.7',
    install_requires=[
        'numpy >= 1.7.0',
    ],
    extras_require={
        'testing': ['pytest'],
    }
)
