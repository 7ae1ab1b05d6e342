"""
StoryCoin 后端：分支故事旅程、金币账本与章节解锁
"""
