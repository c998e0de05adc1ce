import asyncio
from taxitao.schemas.schemas import Driver
from taxitao.services.carousel import DriverCarousel, filter_live_drivers


def _driver(name, rating=0, status="available", subscription="active", images=("car.jpg",), vehicle_type="sedan"):
    return Driver(
        user_id=name,
        name=name,
        slug=name,
        phone="+254711000000",
        email=f"{name}@example.com",
        status=status,
        subscription_status=subscription,
        average_rating=rating,
        vehicles=[{"type": vehicle_type, "images": list(images)}],
    )


def test_next_wraps_after_full_cycle():
    carousel = DriverCarousel(3)
    seen = [carousel.next() for _ in range(3)]
    assert seen == [1, 2, 0]


def test_prev_from_first_goes_to_last():
    carousel = DriverCarousel(4)
    assert carousel.prev() == 3


def test_empty_carousel_stays_at_zero():
    carousel = DriverCarousel(0)
    assert carousel.next() == 0
    assert carousel.prev() == 0
    assert carousel.peek() == {"index": 0, "next": 0, "prev": 0}


def test_resize_clamps_index():
    carousel = DriverCarousel(5, index=4)
    assert carousel.resize(2) == 1
    assert carousel.resize(0) == 0


def test_peek_neighbours():
    assert DriverCarousel(3, index=0).peek() == {"index": 0, "next": 1, "prev": 2}


def test_filter_live_drivers():
    drivers = [
        _driver("a", rating=4.1),
        _driver("b", rating=4.9),
        _driver("offline", status="offline"),
        _driver("unpaid", subscription="expired"),
        _driver("nophoto", images=()),
        _driver("van", rating=5, vehicle_type="van"),
    ]

    live = filter_live_drivers(drivers)
    assert [d.name for d in live] == ["van", "b", "a"]

    sedans = filter_live_drivers(drivers, "sedan")
    assert [d.name for d in sedans] == ["b", "a"]


def test_autoplay_ticks_until_cancelled():
    ticks = []

    async def run():
        carousel = DriverCarousel(2)
        task = asyncio.create_task(carousel.autoplay(ticks.append, interval=0.01))
        await asyncio.sleep(0.1)
        task.cancel()

    asyncio.run(run())
    assert ticks[:2] == [1, 0]
