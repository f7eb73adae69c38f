from setuptools import setup

setup(
    name="device-info",
    version="1.0",
    py_modules=[
        "main",
        "server",
        "device_info",
        "classification",
        "battery_monitor",
        "platform_services",
        "linux_services",
        "i18n",
    ],
    data_files=[("locales", ["locales/en.json"])],
    python_requires=">=3.9",
    install_requires=[
        "rich",
        "fastapi",
        "uvicorn",
    ],
    extras_require={
        "test": ["pytest", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "device-info=main:main",
            "device-info-server=server:main",
        ],
    },
)
